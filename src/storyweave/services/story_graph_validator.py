"""Static validation of storylet content and the links between storylets."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from storyweave.core.types import EFFECT_KINDS, TRIGGER_KINDS
from storyweave.domain.defs import StoryletDef

Severity = str

TITLE_WARN_LENGTH = 100
DESCRIPTION_WARN_LENGTH = 500
CONTENT_WARN_LENGTH = 50
TAG_WARN_LENGTH = 20
PRIORITY_RANGE = (1, 10)

_TRIGGERS_WITH_CONDITION = {"resource", "relationship", "clue", "storylet_completion"}
_EFFECTS_WITH_VALUE = {"resource", "relationship", "arc_progress", "time_advance"}


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


@dataclass(frozen=True, slots=True)
class EntryRoot:
    storylet_id: str
    source_type: str
    source_id: str
    source_field: str


@dataclass(frozen=True, slots=True)
class TriggerView:
    kind: str
    condition: str
    value: object
    path: str


@dataclass(frozen=True, slots=True)
class EffectView:
    kind: str
    target: str
    value: object
    path: str


@dataclass(frozen=True, slots=True)
class ChoiceView:
    text: str
    next_storylet_id: str | None
    probability: object
    triggers: list[TriggerView]
    effects: list[EffectView]
    path: str


@dataclass(frozen=True, slots=True)
class StoryletInfo:
    storylet_id: str
    title: str
    description: str
    content: str
    choices: list[ChoiceView]
    triggers: list[TriggerView]
    effects: list[EffectView]
    priority: object
    estimated_play_time: object
    tags: list[str]
    prerequisites: list[str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def has_errors(issues: Sequence[Issue]) -> bool:
    return any(issue.severity == "ERROR" for issue in issues)


def validate_storylets(
    storylets: Mapping[str, StoryletDef | Mapping[str, object]]
    | Sequence[StoryletDef]
    | Sequence[tuple[str, object]],
    entry_roots: Sequence[EntryRoot] | Sequence[str] | None = None,
) -> list[Issue]:
    """Run form, integrity and graph checks over a set of storylets.

    Storylets may be parsed ``StoryletDef`` objects or raw JSON mappings. When
    ``entry_roots`` is omitted, every storylet that no choice leads to is
    treated as an entry point.
    """
    issues: list[Issue] = []
    raw_items, duplicate_ids = _coerce_storylets(storylets)
    for storylet_id in duplicate_ids:
        issues.append(
            Issue(
                severity="ERROR",
                code="DUPLICATE_STORYLET_ID",
                message="Duplicate storylet id detected.",
                context={"storylet_id": storylet_id},
            )
        )
    infos: dict[str, StoryletInfo] = {}
    for storylet_id, storylet in raw_items.items():
        info = _build_info(storylet_id, storylet, issues)
        if info is not None:
            infos[storylet_id] = info

    for info in infos.values():
        issues.extend(validate_storylet_form(info))
        issues.extend(validate_storylet_integrity(info, infos))
        _validate_references(info, set(infos), issues)

    roots = _coerce_entry_roots(entry_roots, infos)
    for entry in roots:
        if entry.storylet_id not in infos:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="MISSING_ENTRY_ROOT",
                    message="Entry root references missing storylet.",
                    context={
                        "source_type": entry.source_type,
                        "source_id": entry.source_id,
                        "field_path": entry.source_field,
                        "referenced_id": entry.storylet_id,
                    },
                )
            )
    _validate_reachability(infos, roots, issues)
    return issues


def validate_storylet_form(storylet: StoryletInfo | StoryletDef) -> list[Issue]:
    """Field level checks an author sees while editing a single storylet."""
    info = storylet if isinstance(storylet, StoryletInfo) else _info_from_def(storylet)
    sid = info.storylet_id
    issues: list[Issue] = []

    def add(severity: str, code: str, message: str, field_path: str) -> None:
        issues.append(
            Issue(
                severity=severity,
                code=code,
                message=message,
                context={"storylet_id": sid, "field_path": field_path},
            )
        )

    if not info.title.strip():
        add("ERROR", "TITLE_REQUIRED", "Title is required.", "title")
    elif len(info.title) > TITLE_WARN_LENGTH:
        add("WARN", "TITLE_TOO_LONG", "Title is quite long, consider shortening.", "title")
    if not info.description.strip():
        add("ERROR", "DESCRIPTION_REQUIRED", "Description is required.", "description")
    elif len(info.description) > DESCRIPTION_WARN_LENGTH:
        add("WARN", "DESCRIPTION_TOO_LONG", "Description is very long, consider shortening.", "description")
    if not info.content.strip():
        add("ERROR", "CONTENT_REQUIRED", "Content is required.", "content")
    elif len(info.content) < CONTENT_WARN_LENGTH:
        add("WARN", "CONTENT_TOO_SHORT", "Content seems short, consider adding more detail.", "content")

    if not info.choices:
        add("ERROR", "CHOICES_REQUIRED", "At least one choice is required.", "choices")
    for index, choice in enumerate(info.choices):
        if not choice.text.strip():
            add("ERROR", "CHOICE_TEXT_REQUIRED", f"Choice {index + 1} must have text.", f"{choice.path}.text")

    for index, trigger in enumerate(info.triggers):
        if trigger.kind in _TRIGGERS_WITH_CONDITION and not trigger.condition.strip():
            add(
                "ERROR",
                "TRIGGER_CONDITION_REQUIRED",
                f"Trigger {index + 1} must have a condition.",
                f"{trigger.path}.condition",
            )
        if trigger.kind == "resource" and trigger.value is None:
            add(
                "ERROR",
                "TRIGGER_VALUE_REQUIRED",
                f"Trigger {index + 1} of type 'resource' must have a value.",
                f"{trigger.path}.value",
            )

    for index, effect in enumerate(info.effects):
        if effect.kind != "time_advance" and not effect.target.strip():
            add("ERROR", "EFFECT_TARGET_REQUIRED", f"Effect {index + 1} must have a target.", f"{effect.path}.target")
        if effect.kind in _EFFECTS_WITH_VALUE and effect.value is None:
            add("WARN", "EFFECT_VALUE_MISSING", f"Effect {index + 1} has no value specified.", f"{effect.path}.value")

    low, high = PRIORITY_RANGE
    if isinstance(info.priority, (int, float)) and not low <= info.priority <= high:
        add("WARN", "PRIORITY_OUT_OF_RANGE", f"Priority should be between {low}-{high}.", "priority")
    if isinstance(info.estimated_play_time, (int, float)) and info.estimated_play_time < 1:
        add(
            "WARN",
            "PLAY_TIME_TOO_SHORT",
            "Estimated play time should be at least 1 minute.",
            "estimated_play_time",
        )
    if any(len(tag) > TAG_WARN_LENGTH for tag in info.tags):
        add("WARN", "TAG_TOO_LONG", "Some tags are very long, consider shortening.", "tags")
    return issues


def validate_storylet_integrity(
    storylet: StoryletInfo | StoryletDef,
    all_storylets: Mapping[str, StoryletInfo | StoryletDef],
) -> list[Issue]:
    """Checks that depend on the rest of the collection."""
    info = storylet if isinstance(storylet, StoryletInfo) else _info_from_def(storylet)
    others = {
        key: value if isinstance(value, StoryletInfo) else _info_from_def(value)
        for key, value in all_storylets.items()
    }
    issues: list[Issue] = []
    title = info.title.lower()
    if title and any(
        other.storylet_id != info.storylet_id and other.title.lower() == title for other in others.values()
    ):
        issues.append(
            Issue(
                severity="WARN",
                code="DUPLICATE_TITLE",
                message=f'Another storylet with title "{info.title}" already exists.',
                context={"storylet_id": info.storylet_id},
            )
        )
    for prerequisite in info.prerequisites:
        if prerequisite not in others:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="MISSING_PREREQUISITE",
                    message=f'Prerequisite storylet "{prerequisite}" not found.',
                    context={"storylet_id": info.storylet_id, "referenced_id": prerequisite},
                )
            )
    if _has_prerequisite_cycle(info.storylet_id, others, []):
        issues.append(
            Issue(
                severity="ERROR",
                code="CIRCULAR_PREREQUISITE",
                message="Circular dependency detected in prerequisites.",
                context={"storylet_id": info.storylet_id},
            )
        )
    return issues


def _has_prerequisite_cycle(
    storylet_id: str, infos: Mapping[str, StoryletInfo], path: list[str]
) -> bool:
    if storylet_id in path:
        return True
    info = infos.get(storylet_id)
    if info is None:
        return False
    path.append(storylet_id)
    found = any(_has_prerequisite_cycle(prereq, infos, path) for prereq in info.prerequisites)
    path.pop()
    return found


def _coerce_storylets(
    storylets: Mapping[str, object] | Sequence[object],
) -> tuple[dict[str, object], list[str]]:
    if isinstance(storylets, Mapping):
        return dict(storylets), []
    items: dict[str, object] = {}
    duplicates: list[str] = []
    for entry in storylets:
        if isinstance(entry, StoryletDef):
            storylet_id, storylet = entry.id, entry
        else:
            storylet_id, storylet = entry
        if storylet_id in items:
            duplicates.append(storylet_id)
            continue
        items[storylet_id] = storylet
    return items, duplicates


def _coerce_entry_roots(
    entry_roots: Sequence[EntryRoot] | Sequence[str] | None,
    infos: Mapping[str, StoryletInfo],
) -> list[EntryRoot]:
    if entry_roots is None:
        targeted = {
            choice.next_storylet_id
            for info in infos.values()
            for choice in info.choices
            if choice.next_storylet_id
        }
        return [
            EntryRoot(
                storylet_id=storylet_id,
                source_type="storylet",
                source_id=storylet_id,
                source_field="(no incoming choices)",
            )
            for storylet_id in sorted(set(infos) - targeted)
        ]
    roots: list[EntryRoot] = []
    for entry in entry_roots:
        if isinstance(entry, EntryRoot):
            roots.append(entry)
        else:
            roots.append(
                EntryRoot(
                    storylet_id=str(entry),
                    source_type="unknown",
                    source_id="unknown",
                    source_field="entry_roots",
                )
            )
    return roots


def _info_from_def(storylet: StoryletDef) -> StoryletInfo:
    def trigger_views(triggers: Sequence[object], context: str) -> list[TriggerView]:
        return [
            TriggerView(
                kind=getattr(trigger, "kind", type(trigger).__name__),
                condition=getattr(trigger, "condition", ""),
                value=getattr(trigger, "value", None),
                path=f"{context}[{index}]",
            )
            for index, trigger in enumerate(triggers)
        ]

    def effect_views(effects: Sequence[object], context: str) -> list[EffectView]:
        return [
            EffectView(
                kind=getattr(effect, "kind", type(effect).__name__),
                target=getattr(effect, "target", ""),
                value=getattr(effect, "value", None),
                path=f"{context}[{index}]",
            )
            for index, effect in enumerate(effects)
        ]

    return StoryletInfo(
        storylet_id=storylet.id,
        title=storylet.title,
        description=storylet.description,
        content=storylet.content,
        choices=[
            ChoiceView(
                text=choice.text,
                next_storylet_id=choice.next_storylet_id,
                probability=choice.probability,
                triggers=trigger_views(choice.requirements, f"choices[{index}].requirements"),
                effects=effect_views(choice.effects, f"choices[{index}].effects"),
                path=f"choices[{index}]",
            )
            for index, choice in enumerate(storylet.choices)
        ],
        triggers=trigger_views(storylet.triggers, "triggers"),
        effects=effect_views(storylet.effects, "effects"),
        priority=storylet.priority,
        estimated_play_time=storylet.estimated_play_time,
        tags=list(storylet.tags),
        prerequisites=list(storylet.prerequisites),
    )


def _build_info(storylet_id: str, storylet: object, issues: list[Issue]) -> StoryletInfo | None:
    if isinstance(storylet, StoryletDef):
        info = _info_from_def(storylet)
    elif isinstance(storylet, Mapping):
        info = _info_from_raw(storylet_id, storylet, issues)
    else:
        issues.append(
            Issue(
                severity="ERROR",
                code="INVALID_STORYLET_TYPE",
                message="Storylet payload must be a mapping.",
                context={"storylet_id": storylet_id},
            )
        )
        return None
    _check_kinds(info, issues)
    return info


def _info_from_raw(storylet_id: str, raw: Mapping[str, object], issues: list[Issue]) -> StoryletInfo:
    def text(key: str, payload: Mapping[str, object] = raw) -> str:
        value = payload.get(key)
        return value if isinstance(value, str) else ""

    def items(value: object, field_path: str) -> list[Mapping[str, object]]:
        if value is None:
            return []
        if not isinstance(value, list):
            issues.append(
                Issue(
                    severity="ERROR",
                    code="INVALID_LIST",
                    message=f"{field_path} must be a list if provided.",
                    context={"storylet_id": storylet_id, "field_path": field_path},
                )
            )
            return []
        entries: list[Mapping[str, object]] = []
        for index, entry in enumerate(value):
            if isinstance(entry, Mapping):
                entries.append(entry)
            else:
                issues.append(
                    Issue(
                        severity="ERROR",
                        code="INVALID_ENTRY",
                        message="List entry must be an object.",
                        context={"storylet_id": storylet_id, "field_path": f"{field_path}[{index}]"},
                    )
                )
        return entries

    def trigger_views(value: object, context: str) -> list[TriggerView]:
        return [
            TriggerView(
                kind=text("type", entry),
                condition=text("condition", entry),
                value=entry.get("value"),
                path=f"{context}[{index}]",
            )
            for index, entry in enumerate(items(value, context))
        ]

    def effect_views(value: object, context: str) -> list[EffectView]:
        return [
            EffectView(
                kind=text("type", entry),
                target=text("target", entry),
                value=entry.get("value"),
                path=f"{context}[{index}]",
            )
            for index, entry in enumerate(items(value, context))
        ]

    choices: list[ChoiceView] = []
    for index, entry in enumerate(items(raw.get("choices"), "choices")):
        next_id = entry.get("next_storylet_id")
        choices.append(
            ChoiceView(
                text=text("text", entry),
                next_storylet_id=next_id if isinstance(next_id, str) else None,
                probability=entry.get("probability"),
                triggers=trigger_views(entry.get("requirements"), f"choices[{index}].requirements"),
                effects=effect_views(entry.get("effects"), f"choices[{index}].effects"),
                path=f"choices[{index}]",
            )
        )
    tags = raw.get("tags")
    prerequisites = raw.get("prerequisites")
    return StoryletInfo(
        storylet_id=storylet_id,
        title=text("title"),
        description=text("description"),
        content=text("content"),
        choices=choices,
        triggers=trigger_views(raw.get("triggers"), "triggers"),
        effects=effect_views(raw.get("effects"), "effects"),
        priority=raw.get("priority"),
        estimated_play_time=raw.get("estimated_play_time"),
        tags=[tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else [],
        prerequisites=(
            [item for item in prerequisites if isinstance(item, str)]
            if isinstance(prerequisites, list)
            else []
        ),
    )


def _check_kinds(info: StoryletInfo, issues: list[Issue]) -> None:
    triggers = list(info.triggers)
    effects = list(info.effects)
    for choice in info.choices:
        triggers.extend(choice.triggers)
        effects.extend(choice.effects)
    for trigger in triggers:
        if trigger.kind not in TRIGGER_KINDS:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="UNKNOWN_TRIGGER_TYPE",
                    message=f"Trigger type '{trigger.kind}' is not recognized.",
                    context={"storylet_id": info.storylet_id, "field_path": trigger.path},
                )
            )
    for effect in effects:
        if effect.kind not in EFFECT_KINDS:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="UNKNOWN_EFFECT_TYPE",
                    message=f"Effect type '{effect.kind}' is not recognized.",
                    context={"storylet_id": info.storylet_id, "field_path": effect.path},
                )
            )


def _validate_references(info: StoryletInfo, storylet_ids: set[str], issues: list[Issue]) -> None:
    for choice in info.choices:
        if choice.next_storylet_id and choice.next_storylet_id not in storylet_ids:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="MISSING_STORYLET_REF",
                    message="Choice references missing storylet.",
                    context={
                        "storylet_id": info.storylet_id,
                        "field_path": f"{choice.path}.next_storylet_id",
                        "referenced_id": choice.next_storylet_id,
                    },
                )
            )
        probability = choice.probability
        if probability is None:
            continue
        if isinstance(probability, bool) or not isinstance(probability, (int, float)) or not (
            0 <= probability <= 100
        ):
            issues.append(
                Issue(
                    severity="ERROR",
                    code="INVALID_PROBABILITY",
                    message="Choice probability must be a number between 0 and 100.",
                    context={"storylet_id": info.storylet_id, "field_path": f"{choice.path}.probability"},
                )
            )
    for effect in _all_effects(info):
        if effect.kind == "storylet_unlock" and effect.target and effect.target not in storylet_ids:
            issues.append(
                Issue(
                    severity="WARN",
                    code="MISSING_STORYLET_REF",
                    message="storylet_unlock targets an unknown storylet.",
                    context={
                        "storylet_id": info.storylet_id,
                        "field_path": f"{effect.path}.target",
                        "referenced_id": effect.target,
                    },
                )
            )


def _all_effects(info: StoryletInfo) -> list[EffectView]:
    effects = list(info.effects)
    for choice in info.choices:
        effects.extend(choice.effects)
    return effects


def _validate_reachability(
    infos: Mapping[str, StoryletInfo],
    entry_roots: Sequence[EntryRoot],
    issues: list[Issue],
) -> None:
    storylet_ids = set(infos)
    stack = [entry.storylet_id for entry in entry_roots if entry.storylet_id in storylet_ids]
    if not stack:
        return
    reachable: set[str] = set()
    while stack:
        storylet_id = stack.pop()
        if storylet_id in reachable:
            continue
        reachable.add(storylet_id)
        info = infos[storylet_id]
        for choice in info.choices:
            if choice.next_storylet_id in storylet_ids:
                stack.append(choice.next_storylet_id)
        for effect in _all_effects(info):
            if effect.kind == "storylet_unlock" and effect.target in storylet_ids:
                stack.append(effect.target)
    for storylet_id in sorted(storylet_ids - reachable):
        issues.append(
            Issue(
                severity="WARN",
                code="UNREACHABLE_STORYLET",
                message="Storylet is unreachable from entry storylets.",
                context={"storylet_id": storylet_id},
            )
        )
