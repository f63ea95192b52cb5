"""Async orchestrator for the Capture -> Refine -> Results pipeline.

RecipePipeline owns one PipelineState. User actions become events applied
through `transition()`. Actions that need the model take a Ticket before the
call, await the gateway, and dispatch the outcome with that ticket; if the
input changed in the meantime the outcome is discarded by the transition.

None of the action methods raise for bad input or model failures. Problems
end up as notices in `view.notices`.
"""

from typing import Optional, Union

from recipe_snap.inference.gateway import InferenceGateway
from recipe_snap.models.models import ImageInput, Notice, RecipeDetail, RecipeIdea, Stage
from recipe_snap.pipeline.resolver import RecipeDetailResolver
from recipe_snap.pipeline.saved import RecipeBook, RecipeSink
from recipe_snap.pipeline.state import (
    ExtractionFailed,
    ExtractionSucceeded,
    IdeasProposed,
    ImageCaptured,
    ImageCleared,
    IngredientAdded,
    IngredientRemoved,
    InputRejected,
    ManualEntryStarted,
    Navigated,
    NoticeDismissed,
    NoticeRaised,
    PipelineEvent,
    PipelineState,
    PipelineView,
    ProposalFailed,
    RefinementRequested,
    Ticket,
    extraction_ticket,
    present,
    proposal_ticket,
    transition,
)
from recipe_snap.pipeline.validators import normalize_ingredients, validate_image
from recipe_snap.utils.errors import InferenceError, ValidationError
from recipe_snap.utils.logger import logger

EXTRACTION_FAILED_MESSAGE = "We could not read the ingredients from this photo. Please try again."
PROPOSAL_FAILED_MESSAGE = "We could not get recipe ideas right now. Please try again."


class RecipePipeline:
    """One user's pipeline session.

    Args:
        gateway: Model service used for extraction, proposals and expansion.
        resolver: Recipe detail resolver. Built on `gateway` if omitted.
        sink: Where saved recipes go. An in-memory RecipeBook if omitted.
        state: Starting state, mostly useful in tests.
    """

    def __init__(
        self,
        gateway: InferenceGateway,
        resolver: Optional[RecipeDetailResolver] = None,
        sink: Optional[RecipeSink] = None,
        state: Optional[PipelineState] = None,
    ) -> None:
        self.gateway = gateway
        self.resolver = resolver or RecipeDetailResolver(gateway)
        self.sink = sink if sink is not None else RecipeBook()
        self._state = state or PipelineState()
        self._in_flight: set[Ticket] = set()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def view(self) -> PipelineView:
        return present(self._state)

    @property
    def busy(self) -> bool:
        """True while any model call started by this pipeline is pending."""
        return bool(self._in_flight)

    def dispatch(self, event: PipelineEvent) -> PipelineState:
        self._state = transition(self._state, event)
        return self._state

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def capture_image(self, image: Union[ImageInput, tuple, None]) -> PipelineView:
        """Make `image` the current photo. Everything derived from a previous photo is dropped."""
        try:
            validated = validate_image(image)
        except ValidationError as e:
            self.dispatch(InputRejected(stage=Stage.CAPTURE, field=e.field, message=e.message))
            return self.view

        logger.info(
            f"Captured image {validated.identity[:12]} ({validated.size_kb:.1f}KB)",
            extra={"stage": Stage.CAPTURE.value, "image_id": validated.identity},
        )
        self.dispatch(ImageCaptured(image=validated))
        return self.view

    def clear_image(self) -> PipelineView:
        self.dispatch(ImageCleared())
        return self.view

    def start_manual(self) -> PipelineView:
        """Skip the photo and type ingredients by hand."""
        self.dispatch(ManualEntryStarted())
        return self.view

    async def analyze(self) -> PipelineView:
        """Extract ingredients from the current photo and move to Refine.

        A second call for the same photo while the first is still pending is
        ignored.
        """
        image = self._state.image
        if image is None:
            self.dispatch(
                InputRejected(
                    stage=Stage.CAPTURE,
                    field="image",
                    message="Please provide a photo of your ingredients.",
                )
            )
            return self.view

        ticket = extraction_ticket(self._state)
        if ticket in self._in_flight:
            logger.debug("Extraction already running for this photo")
            return self.view

        self._in_flight.add(ticket)
        try:
            ingredients = await self.gateway.extract_ingredients(image)
        except ValidationError as e:
            self.dispatch(InputRejected(stage=Stage.CAPTURE, field=e.field, message=e.message))
        except InferenceError as e:
            logger.warning(f"{e}", extra={"stage": Stage.CAPTURE.value, "image_id": ticket.image_id})
            self.dispatch(ExtractionFailed(ticket=ticket, message=EXTRACTION_FAILED_MESSAGE))
        else:
            self.dispatch(ExtractionSucceeded(ticket=ticket, ingredients=ingredients))
        finally:
            self._in_flight.discard(ticket)
        return self.view

    # ------------------------------------------------------------------
    # Refine
    # ------------------------------------------------------------------

    def add_ingredient(self, name: str) -> PipelineView:
        self.dispatch(IngredientAdded(name=name or ""))
        return self.view

    def remove_ingredient(self, name: str) -> PipelineView:
        self.dispatch(IngredientRemoved(name=name or ""))
        return self.view

    async def request_ideas(self) -> PipelineView:
        """Ask for recipe ideas for the current ingredient set and move to Results."""
        try:
            snapshot = normalize_ingredients(self.view.ingredients, required=True)
        except ValidationError as e:
            self.dispatch(InputRejected(stage=Stage.REFINE, field=e.field, message=e.message))
            return self.view

        ticket = proposal_ticket(self._state)
        if ticket in self._in_flight:
            logger.debug("Recipe ideas already requested for this ingredient list")
            return self.view

        self._in_flight.add(ticket)
        try:
            ideas = await self.gateway.propose_recipes(list(snapshot.items))
        except ValidationError as e:
            self.dispatch(InputRejected(stage=Stage.REFINE, field=e.field, message=e.message))
        except InferenceError as e:
            logger.warning(f"{e}", extra={"stage": Stage.REFINE.value})
            self.dispatch(ProposalFailed(ticket=ticket, message=PROPOSAL_FAILED_MESSAGE))
        else:
            self.dispatch(IdeasProposed(ticket=ticket, ideas=ideas))
        finally:
            self._in_flight.discard(ticket)
        return self.view

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def request_refinement(self) -> PipelineView:
        """Go back from Results to Refine, keeping the ingredient list."""
        self.dispatch(RefinementRequested())
        return self.view

    def navigate(self, stage: Union[Stage, str]) -> PipelineView:
        """Show `stage`, or the nearest earlier stage whose data is still current."""
        try:
            target = Stage(stage)
        except ValueError:
            current = self.view.stage
            self.dispatch(InputRejected(stage=current, field="stage", message=f"Unknown stage: {stage}"))
            return self.view
        self.dispatch(Navigated(stage=target))
        return self.view

    async def open_recipe(self, idea: Union[RecipeIdea, str]) -> Optional[RecipeDetail]:
        """Expand a recipe idea into its full details.

        Returns:
            The recipe detail (possibly the generic fallback), or None if the
            name was empty.
        """
        name = idea.name if isinstance(idea, RecipeIdea) else idea
        view = self.view
        try:
            resolved = await self.resolver.resolve(
                name,
                context_ingredients=list(view.ingredients) or None,
                source_image=view.image,
            )
        except ValidationError as e:
            self.dispatch(InputRejected(stage=Stage.RESULTS, field=e.field, message=e.message))
            return None

        if resolved.notice is not None:
            self.dispatch(NoticeRaised(notice=resolved.notice))
        return resolved.detail

    def save_recipe(self, detail: RecipeDetail) -> Notice:
        """Hand `detail` to the sink and return the notice telling the user about it."""
        if self.sink.save(detail):
            message = f"{detail.name} saved to your recipes."
        else:
            message = f"{detail.name} is already in your recipes."
        self.dispatch(NoticeRaised(notice=Notice(id=0, level="info", stage=Stage.RESULTS, message=message)))
        return self._state.notices[-1]

    def dismiss_notice(self, notice_id: int) -> PipelineView:
        self.dispatch(NoticeDismissed(notice_id=notice_id))
        return self.view
