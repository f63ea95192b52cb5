"""Pipeline state and its pure transition function.

The pipeline walks Capture -> Refine -> Results. Every piece of derived data
carries the identity of the input it was derived from:

- the ingredient set carries its source (image identity, or "manual"),
- the recipe ideas carry the tag of the ingredient snapshot they were proposed for,
- notices carry the tag of the input they talk about.

`transition(state, event)` returns a new PipelineState and never mutates its
argument. Results of model calls arrive as events holding the Ticket issued
when the call started; a ticket that no longer matches the current input makes
the event a no-op.
"""

import hashlib
import json
from typing import Annotated, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from recipe_snap.models.models import ImageInput, Notice, RecipeIdea, Stage
from recipe_snap.pipeline.ingredients import MANUAL_SOURCE, IngredientSet
from recipe_snap.utils.errors import StaleResultError
from recipe_snap.utils.logger import logger

_STAGE_ORDER = (Stage.CAPTURE, Stage.REFINE, Stage.RESULTS)


class Ticket(BaseModel):
    """Identity of the input a model call was started for."""

    model_config = ConfigDict(frozen=True)

    epoch: int
    image_id: Optional[str] = None
    snapshot: Optional[str] = None


class PipelineState(BaseModel):
    """Complete state of one user's pipeline. Treat as immutable."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stage: Stage = Stage.CAPTURE
    image: Optional[ImageInput] = None
    # Incremented whenever the current image changes
    epoch: int = 0
    ingredients: Annotated[IngredientSet, Field(default_factory=IngredientSet)]
    ideas: tuple[RecipeIdea, ...] = ()
    ideas_tag: Optional[str] = None
    notices: tuple[Notice, ...] = ()
    next_notice_id: int = 1


class PipelineView(BaseModel):
    """What the UI may show: only data that matches the current input."""

    model_config = ConfigDict(frozen=True)

    stage: Stage
    image: Optional[ImageInput] = None
    ingredients: tuple[str, ...] = ()
    ideas: tuple[RecipeIdea, ...] = ()
    notices: tuple[Notice, ...] = ()


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class ImageCaptured(BaseModel):
    model_config = ConfigDict(frozen=True)
    image: ImageInput


class ImageCleared(BaseModel):
    model_config = ConfigDict(frozen=True)


class ManualEntryStarted(BaseModel):
    model_config = ConfigDict(frozen=True)


class ExtractionSucceeded(BaseModel):
    model_config = ConfigDict(frozen=True)
    ticket: Ticket
    ingredients: list[str]


class ExtractionFailed(BaseModel):
    model_config = ConfigDict(frozen=True)
    ticket: Ticket
    message: str


class IngredientAdded(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: str


class IngredientRemoved(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: str


class IdeasProposed(BaseModel):
    model_config = ConfigDict(frozen=True)
    ticket: Ticket
    ideas: list[RecipeIdea]


class ProposalFailed(BaseModel):
    model_config = ConfigDict(frozen=True)
    ticket: Ticket
    message: str


class InputRejected(BaseModel):
    model_config = ConfigDict(frozen=True)
    stage: Stage
    field: Optional[str] = None
    message: str


class RefinementRequested(BaseModel):
    model_config = ConfigDict(frozen=True)


class Navigated(BaseModel):
    model_config = ConfigDict(frozen=True)
    stage: Stage


class NoticeDismissed(BaseModel):
    model_config = ConfigDict(frozen=True)
    notice_id: int


class NoticeRaised(BaseModel):
    model_config = ConfigDict(frozen=True)
    notice: Notice


PipelineEvent = Union[
    ImageCaptured,
    ImageCleared,
    ManualEntryStarted,
    ExtractionSucceeded,
    ExtractionFailed,
    IngredientAdded,
    IngredientRemoved,
    IdeasProposed,
    ProposalFailed,
    InputRejected,
    RefinementRequested,
    Navigated,
    NoticeDismissed,
    NoticeRaised,
]


# ---------------------------------------------------------------------------
# Tags and validity
# ---------------------------------------------------------------------------


def input_key(state: PipelineState) -> str:
    """Tag of the current upstream input: the image identity, or "manual"."""
    return state.image.identity if state.image is not None else MANUAL_SOURCE


def ingredients_valid(state: PipelineState) -> bool:
    return state.ingredients.source is not None and state.ingredients.source == input_key(state)


def snapshot_tag(state: PipelineState) -> Optional[str]:
    """Tag of the current ingredient snapshot, or None if the set is not valid."""
    if not ingredients_valid(state):
        return None
    payload = json.dumps([state.ingredients.source, list(state.ingredients.snapshot_key())])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def ideas_valid(state: PipelineState) -> bool:
    tag = snapshot_tag(state)
    return tag is not None and state.ideas_tag == tag


def _stage_valid(state: PipelineState, stage: Stage) -> bool:
    if stage == Stage.RESULTS:
        return ideas_valid(state)
    if stage == Stage.REFINE:
        return ingredients_valid(state)
    return True


def _fallback_stage(state: PipelineState, requested: Stage) -> Stage:
    """Highest stage at or below `requested` whose data matches the current input."""
    idx = _STAGE_ORDER.index(requested)
    while idx > 0 and not _stage_valid(state, _STAGE_ORDER[idx]):
        idx -= 1
    return _STAGE_ORDER[idx]


def effective_stage(state: PipelineState) -> Stage:
    """Stage to display, re-derived when the stored stage points at stale data."""
    return _fallback_stage(state, state.stage)


def extraction_ticket(state: PipelineState) -> Ticket:
    image_id = state.image.identity if state.image is not None else None
    return Ticket(epoch=state.epoch, image_id=image_id)


def proposal_ticket(state: PipelineState) -> Ticket:
    return Ticket(epoch=state.epoch, image_id=input_key(state), snapshot=snapshot_tag(state))


def _current_tags(state: PipelineState) -> set[str]:
    tags = {input_key(state)}
    tag = snapshot_tag(state)
    if tag is not None:
        tags.add(tag)
    return tags


def visible_notices(state: PipelineState) -> tuple[Notice, ...]:
    """Notices that still refer to the current input."""
    current = _current_tags(state)
    return tuple(n for n in state.notices if n.tag is None or n.tag in current)


def present(state: PipelineState) -> PipelineView:
    """Build the view of `state`, dropping anything derived from a replaced input."""
    return PipelineView(
        stage=effective_stage(state),
        image=state.image,
        ingredients=state.ingredients.items if ingredients_valid(state) else (),
        ideas=state.ideas if ideas_valid(state) else (),
        notices=visible_notices(state),
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _with_notice(
    state: PipelineState,
    level: str,
    notice_stage: Stage,
    message: str,
    tag: Optional[str],
    field: Optional[str] = None,
    **updates,
) -> PipelineState:
    notice = Notice(
        id=state.next_notice_id,
        level=level,
        stage=notice_stage,
        message=message,
        field=field,
        tag=tag,
    )
    updates["notices"] = updates.get("notices", state.notices) + (notice,)
    updates["next_notice_id"] = state.next_notice_id + 1
    return state.model_copy(update=updates)


def _reset(state: PipelineState, image: Optional[ImageInput]) -> PipelineState:
    cleared = state.model_copy(
        update={
            "stage": Stage.CAPTURE,
            "image": image,
            "epoch": state.epoch + 1,
            "ingredients": IngredientSet(),
            "ideas": (),
            "ideas_tag": None,
        }
    )
    # Notices about the replaced input can never become visible again
    return cleared.model_copy(update={"notices": visible_notices(cleared)})


def _check_extraction_ticket(state: PipelineState, ticket: Ticket) -> None:
    if state.image is None or ticket.epoch != state.epoch or ticket.image_id != state.image.identity:
        raise StaleResultError(f"extraction result for image {ticket.image_id} (epoch {ticket.epoch})")


def _check_proposal_ticket(state: PipelineState, ticket: Ticket) -> None:
    if (
        ticket.epoch != state.epoch
        or ticket.image_id != input_key(state)
        or ticket.snapshot is None
        or ticket.snapshot != snapshot_tag(state)
    ):
        raise StaleResultError(f"recipe ideas for snapshot {ticket.snapshot} (epoch {ticket.epoch})")


def _on_image_captured(state: PipelineState, event: ImageCaptured) -> PipelineState:
    if state.image is not None and state.image.identity == event.image.identity:
        logger.debug("Same photo captured again, keeping derived data")
        return state
    return _reset(state, event.image)


def _on_image_cleared(state: PipelineState, event: ImageCleared) -> PipelineState:
    return _reset(state, None)


def _on_manual_entry(state: PipelineState, event: ManualEntryStarted) -> PipelineState:
    if state.image is not None:
        return _with_notice(
            state,
            "error",
            Stage.CAPTURE,
            "Remove the current photo before typing ingredients by hand.",
            tag=input_key(state),
            field="image",
        )
    if ingredients_valid(state):
        return state.model_copy(update={"stage": Stage.REFINE})
    return state.model_copy(
        update={"stage": Stage.REFINE, "ingredients": IngredientSet(source=MANUAL_SOURCE), "ideas": (), "ideas_tag": None}
    )


def _on_extraction_succeeded(state: PipelineState, event: ExtractionSucceeded) -> PipelineState:
    _check_extraction_ticket(state, event.ticket)
    if effective_stage(state) != Stage.CAPTURE:
        raise StaleResultError("ingredients for this photo were already extracted")

    ingredients = IngredientSet(event.ingredients, source=state.image.identity)
    if ingredients:
        message = f"Found {len(ingredients)} ingredients. Review them before asking for recipes."
    else:
        message = "No ingredients could be identified from the photo. Try another photo or add them by hand."
    return _with_notice(
        state,
        "info",
        Stage.REFINE,
        message,
        tag=state.image.identity,
        stage=Stage.REFINE,
        ingredients=ingredients,
        ideas=(),
        ideas_tag=None,
    )


def _on_extraction_failed(state: PipelineState, event: ExtractionFailed) -> PipelineState:
    _check_extraction_ticket(state, event.ticket)
    return _with_notice(state, "error", Stage.CAPTURE, event.message, tag=event.ticket.image_id)


def _edit_ingredients(state: PipelineState, name: str, adding: bool) -> PipelineState:
    if effective_stage(state) != Stage.REFINE:
        logger.debug(f"Ignoring ingredient edit outside Refine (stage={effective_stage(state).value})")
        return state

    if not name or not name.strip():
        return _with_notice(
            state,
            "error",
            Stage.REFINE,
            "Ingredient name cannot be empty.",
            tag=input_key(state),
            field="ingredient",
        )

    ingredients = state.ingredients.copy()
    if adding:
        changed = ingredients.add(name)
        if not changed:
            return _with_notice(
                state,
                "info",
                Stage.REFINE,
                f"{name.strip()} is already in the list.",
                tag=input_key(state),
            )
    else:
        changed = ingredients.remove(name)
        if not changed:
            return state

    edited = state.model_copy(update={"ingredients": ingredients})
    # Ideas proposed for the previous snapshot are no longer valid
    return edited.model_copy(update={"ideas": (), "ideas_tag": None, "notices": visible_notices(edited)})


def _on_ingredient_added(state: PipelineState, event: IngredientAdded) -> PipelineState:
    return _edit_ingredients(state, event.name, adding=True)


def _on_ingredient_removed(state: PipelineState, event: IngredientRemoved) -> PipelineState:
    return _edit_ingredients(state, event.name, adding=False)


def _on_ideas_proposed(state: PipelineState, event: IdeasProposed) -> PipelineState:
    _check_proposal_ticket(state, event.ticket)
    ideas = tuple(event.ideas)
    if ideas:
        message = f"{len(ideas)} recipe ideas ready."
    else:
        message = "No recipe ideas found for these ingredients. Try adjusting your list."
    return _with_notice(
        state,
        "info",
        Stage.RESULTS,
        message,
        tag=event.ticket.snapshot,
        stage=Stage.RESULTS,
        ideas=ideas,
        ideas_tag=event.ticket.snapshot,
    )


def _on_proposal_failed(state: PipelineState, event: ProposalFailed) -> PipelineState:
    _check_proposal_ticket(state, event.ticket)
    return _with_notice(state, "error", Stage.REFINE, event.message, tag=event.ticket.snapshot)


def _on_input_rejected(state: PipelineState, event: InputRejected) -> PipelineState:
    return _with_notice(state, "error", event.stage, event.message, tag=input_key(state), field=event.field)


def _on_refinement_requested(state: PipelineState, event: RefinementRequested) -> PipelineState:
    return state.model_copy(update={"stage": _fallback_stage(state, Stage.REFINE)})


def _on_navigated(state: PipelineState, event: Navigated) -> PipelineState:
    return state.model_copy(update={"stage": _fallback_stage(state, event.stage)})


def _on_notice_dismissed(state: PipelineState, event: NoticeDismissed) -> PipelineState:
    notices = tuple(n for n in state.notices if not (n.id == event.notice_id and n.dismissible))
    return state.model_copy(update={"notices": notices})


def _on_notice_raised(state: PipelineState, event: NoticeRaised) -> PipelineState:
    notice = event.notice
    tag = notice.tag if notice.tag is not None else input_key(state)
    return _with_notice(state, notice.level, notice.stage, notice.message, tag=tag, field=notice.field)


_HANDLERS: dict[type, Callable[[PipelineState, BaseModel], PipelineState]] = {
    ImageCaptured: _on_image_captured,
    ImageCleared: _on_image_cleared,
    ManualEntryStarted: _on_manual_entry,
    ExtractionSucceeded: _on_extraction_succeeded,
    ExtractionFailed: _on_extraction_failed,
    IngredientAdded: _on_ingredient_added,
    IngredientRemoved: _on_ingredient_removed,
    IdeasProposed: _on_ideas_proposed,
    ProposalFailed: _on_proposal_failed,
    InputRejected: _on_input_rejected,
    RefinementRequested: _on_refinement_requested,
    Navigated: _on_navigated,
    NoticeDismissed: _on_notice_dismissed,
    NoticeRaised: _on_notice_raised,
}


def transition(state: PipelineState, event: PipelineEvent) -> PipelineState:
    """Apply one event and return the resulting state.

    Args:
        state: Current state (not modified).
        event: One of the pipeline event models.

    Returns:
        The new state. Events carrying a stale ticket return `state` unchanged.

    Raises:
        TypeError: If `event` is not a pipeline event.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown pipeline event: {type(event).__name__}")

    try:
        new_state = handler(state, event)
    except StaleResultError as e:
        logger.debug(f"Discarded stale result: {e}", extra={"stage": state.stage.value})
        return state

    if new_state.stage != state.stage:
        logger.debug(
            f"{type(event).__name__}: {state.stage.value} → {new_state.stage.value}",
            extra={"stage": new_state.stage.value},
        )
    return new_state
