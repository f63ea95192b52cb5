"""Unit tests for the async RecipePipeline orchestrator.

The gateway is replaced by AsyncMock objects; no network access.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from recipe_snap.inference.gateway import GeminiInferenceGateway, InferenceGateway
from recipe_snap.models.models import ImageInput, RecipeDetail, RecipeIdea, Stage
from recipe_snap.pipeline.machine import EXTRACTION_FAILED_MESSAGE, PROPOSAL_FAILED_MESSAGE, RecipePipeline
from recipe_snap.pipeline.saved import RecipeBook
from recipe_snap.pipeline.validators import slugify
from recipe_snap.utils.errors import InferenceError, InvalidInputError

IMAGE_A = ImageInput(data=b"photo-a", media_type="image/jpeg")
IMAGE_B = ImageInput(data=b"photo-b", media_type="image/jpeg")
SOUP = RecipeIdea(name="Tomato Soup", description="Warm tomato soup.")


def soup_detail(recipe_id="model-made-this-up"):
    return RecipeDetail(
        id=recipe_id,
        name="Tomato Soup",
        description="Warm tomato soup.",
        ingredients=[{"name": "Tomato", "quantity": "4", "unit": "medium"}],
        instructions=["Chop the tomatoes.", "Cook for 20 minutes."],
        prep_time="About 10 minutes",
        cook_time="About 20 minutes",
        servings="For 2 people",
        image_url="https://placehold.co/600x400.png",
    )


@pytest.fixture
def gateway():
    gw = MagicMock(spec=InferenceGateway)
    gw.extract_ingredients = AsyncMock(return_value=["tomato", "onion"])
    gw.propose_recipes = AsyncMock(return_value=[SOUP])
    gw.expand_recipe = AsyncMock(return_value=soup_detail())
    return gw


@pytest.fixture
def pipeline(gateway):
    return RecipePipeline(gateway)


async def reach_results(pipeline):
    pipeline.capture_image(IMAGE_A)
    await pipeline.analyze()
    return await pipeline.request_ideas()


class TestScenarios:
    @pytest.mark.asyncio
    async def test_photo_to_refine(self, pipeline, gateway):
        pipeline.capture_image(IMAGE_A)
        view = await pipeline.analyze()

        gateway.extract_ingredients.assert_awaited_once_with(IMAGE_A)
        assert view.stage == Stage.REFINE
        assert view.ingredients == ("tomato", "onion")
        assert pipeline.state.ingredients.source == IMAGE_A.identity

    @pytest.mark.asyncio
    async def test_duplicate_add_with_different_case(self, pipeline):
        pipeline.capture_image(IMAGE_A)
        await pipeline.analyze()

        view = pipeline.add_ingredient("Tomato")

        assert view.ingredients == ("tomato", "onion")
        assert "already" in view.notices[-1].message

    @pytest.mark.asyncio
    async def test_ideas_then_open_recipe(self, pipeline, gateway):
        view = await reach_results(pipeline)

        gateway.propose_recipes.assert_awaited_once_with(["tomato", "onion"])
        assert view.stage == Stage.RESULTS
        assert view.ideas == (SOUP,)

        detail = await pipeline.open_recipe(view.ideas[0])

        gateway.expand_recipe.assert_awaited_once_with("Tomato Soup", ["tomato", "onion"])
        assert detail.id == slugify("Tomato Soup")
        assert detail.source_image == IMAGE_A

    @pytest.mark.asyncio
    async def test_expansion_failure_returns_fallback(self, pipeline, gateway):
        await reach_results(pipeline)
        gateway.expand_recipe.side_effect = InferenceError("Recipe expansion", "timeout")

        detail = await pipeline.open_recipe("Tomato Soup")

        assert detail.id == "tomato-soup"
        assert detail.ingredients
        assert detail.instructions
        notice = pipeline.view.notices[-1]
        assert notice.level == "warning"
        assert notice.stage == Stage.RESULTS

    @pytest.mark.asyncio
    async def test_unusable_model_recipe_returns_fallback(self):
        payload = {
            "name": "Tomato Soup",
            "description": "Warm soup.",
            "ingredients": [{"name": "Tomato", "quantity": "4", "unit": "medium"}],
            "instructions": ["Chop.", "Boil for 20 minutes."],
            "prep_time": "About 10 minutes",
            "cook_time": "About 20 minutes",
            "servings": "For 2 people",
            "image_url": "https://example.com/" + "x" * 600,
        }
        client = Mock()
        client.models.generate_content.return_value = Mock(text=json.dumps(payload))
        pipeline = RecipePipeline(GeminiInferenceGateway(client=client))

        detail = await pipeline.open_recipe("Tomato Soup")

        assert detail.id == "tomato-soup"
        assert detail.instructions
        assert pipeline.view.notices[-1].level == "warning"


class TestCapture:
    def test_invalid_capture_becomes_notice(self, pipeline):
        view = pipeline.capture_image((b"", "image/jpeg"))

        assert view.image is None
        assert view.notices[-1].field == "image"

    def test_malformed_upload_pair_becomes_notice(self, pipeline):
        view = pipeline.capture_image((b"x",))

        assert view.image is None
        assert view.notices[-1].field == "image"

    def test_capture_from_upload_pair(self, pipeline):
        view = pipeline.capture_image((b"photo-a", "image/jpeg"))
        assert view.image.identity == IMAGE_A.identity

    @pytest.mark.asyncio
    async def test_analyze_without_image(self, pipeline, gateway):
        view = await pipeline.analyze()

        gateway.extract_ingredients.assert_not_awaited()
        assert view.stage == Stage.CAPTURE
        assert view.notices[-1].field == "image"

    @pytest.mark.asyncio
    async def test_extraction_failure(self, pipeline, gateway):
        gateway.extract_ingredients.side_effect = InferenceError("Ingredient extraction", "quota")
        pipeline.capture_image(IMAGE_A)

        view = await pipeline.analyze()

        assert view.stage == Stage.CAPTURE
        assert view.notices[-1].message == EXTRACTION_FAILED_MESSAGE
        assert view.notices[-1].level == "error"
        assert not pipeline.busy

    @pytest.mark.asyncio
    async def test_empty_extraction(self, pipeline, gateway):
        gateway.extract_ingredients.return_value = []
        pipeline.capture_image(IMAGE_A)

        view = await pipeline.analyze()

        assert view.stage == Stage.REFINE
        assert view.ingredients == ()
        assert "No ingredients" in view.notices[-1].message

    def test_clear_image(self, pipeline):
        pipeline.capture_image(IMAGE_A)
        view = pipeline.clear_image()

        assert view.image is None
        assert view.stage == Stage.CAPTURE


class TestStaleness:
    @pytest.mark.asyncio
    async def test_extraction_for_replaced_image_is_discarded(self, gateway):
        release = asyncio.Event()

        async def slow_extract(image):
            await release.wait()
            return ["bread"]

        gateway.extract_ingredients = AsyncMock(side_effect=slow_extract)
        pipeline = RecipePipeline(gateway)
        pipeline.capture_image(IMAGE_A)

        task = asyncio.create_task(pipeline.analyze())
        await asyncio.sleep(0)
        assert pipeline.busy

        pipeline.capture_image(IMAGE_B)
        before = pipeline.state
        release.set()
        await task

        assert pipeline.state is before
        assert pipeline.view.stage == Stage.CAPTURE
        assert pipeline.view.ingredients == ()
        assert not pipeline.busy

    @pytest.mark.asyncio
    async def test_ideas_for_old_snapshot_are_discarded(self, gateway):
        release = asyncio.Event()

        async def slow_propose(ingredients):
            await release.wait()
            return [SOUP]

        gateway.propose_recipes = AsyncMock(side_effect=slow_propose)
        pipeline = RecipePipeline(gateway)
        pipeline.capture_image(IMAGE_A)
        await pipeline.analyze()

        task = asyncio.create_task(pipeline.request_ideas())
        await asyncio.sleep(0)
        pipeline.add_ingredient("garlic")
        release.set()
        await task

        view = pipeline.view
        assert view.stage == Stage.REFINE
        assert view.ideas == ()
        assert view.ingredients == ("tomato", "onion", "garlic")

    @pytest.mark.asyncio
    async def test_duplicate_analyze_while_pending_is_ignored(self, gateway):
        release = asyncio.Event()

        async def slow_extract(image):
            await release.wait()
            return ["tomato"]

        gateway.extract_ingredients = AsyncMock(side_effect=slow_extract)
        pipeline = RecipePipeline(gateway)
        pipeline.capture_image(IMAGE_A)

        first = asyncio.create_task(pipeline.analyze())
        await asyncio.sleep(0)
        await pipeline.analyze()
        release.set()
        await first

        assert gateway.extract_ingredients.await_count == 1
        assert pipeline.view.ingredients == ("tomato",)


class TestRefine:
    @pytest.mark.asyncio
    async def test_manual_entry_flow(self, pipeline, gateway):
        pipeline.start_manual()
        pipeline.add_ingredient("rice")
        pipeline.add_ingredient("egg")

        view = await pipeline.request_ideas()

        gateway.extract_ingredients.assert_not_awaited()
        gateway.propose_recipes.assert_awaited_once_with(["rice", "egg"])
        assert view.stage == Stage.RESULTS

    @pytest.mark.asyncio
    async def test_request_ideas_with_empty_set(self, pipeline, gateway):
        pipeline.start_manual()

        view = await pipeline.request_ideas()

        gateway.propose_recipes.assert_not_awaited()
        assert view.stage == Stage.REFINE
        assert view.notices[-1].field == "ingredients"

    @pytest.mark.asyncio
    async def test_request_ideas_before_extraction(self, pipeline, gateway):
        pipeline.capture_image(IMAGE_A)

        view = await pipeline.request_ideas()

        gateway.propose_recipes.assert_not_awaited()
        assert view.stage == Stage.CAPTURE

    @pytest.mark.asyncio
    async def test_remove_ingredient(self, pipeline):
        pipeline.capture_image(IMAGE_A)
        await pipeline.analyze()

        assert pipeline.remove_ingredient("Onion").ingredients == ("tomato",)

    @pytest.mark.asyncio
    async def test_empty_ideas(self, pipeline, gateway):
        gateway.propose_recipes.return_value = []

        view = await reach_results(pipeline)

        assert view.stage == Stage.RESULTS
        assert view.ideas == ()
        assert "No recipe ideas" in view.notices[-1].message

    @pytest.mark.asyncio
    async def test_proposal_failure(self, pipeline, gateway):
        gateway.propose_recipes.side_effect = InferenceError("Recipe proposal", "500")

        view = await reach_results(pipeline)

        assert view.stage == Stage.REFINE
        assert view.notices[-1].message == PROPOSAL_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_gateway_input_error_becomes_notice(self, pipeline, gateway):
        gateway.propose_recipes.side_effect = InvalidInputError("No ingredients.", field="ingredients")

        view = await reach_results(pipeline)

        assert view.stage == Stage.REFINE
        assert view.notices[-1].field == "ingredients"


class TestResults:
    @pytest.mark.asyncio
    async def test_refine_and_navigate(self, pipeline):
        await reach_results(pipeline)

        assert pipeline.request_refinement().stage == Stage.REFINE
        assert pipeline.navigate("results").stage == Stage.RESULTS
        assert pipeline.navigate(Stage.CAPTURE).stage == Stage.CAPTURE

    @pytest.mark.asyncio
    async def test_navigate_to_unknown_stage(self, pipeline):
        await reach_results(pipeline)

        view = pipeline.navigate("bogus")

        assert view.stage == Stage.RESULTS
        assert view.notices[-1].field == "stage"
        assert "bogus" in view.notices[-1].message

    @pytest.mark.asyncio
    async def test_open_recipe_with_blank_name(self, pipeline, gateway):
        await reach_results(pipeline)

        assert await pipeline.open_recipe("  ") is None
        gateway.expand_recipe.assert_not_awaited()
        assert pipeline.view.notices[-1].field == "recipe_name"

    @pytest.mark.asyncio
    async def test_save_recipe(self, gateway):
        book = RecipeBook()
        pipeline = RecipePipeline(gateway, sink=book)
        await reach_results(pipeline)
        detail = await pipeline.open_recipe(SOUP)

        first = pipeline.save_recipe(detail)
        second = pipeline.save_recipe(detail)

        assert book.is_saved("tomato-soup")
        assert len(book) == 1
        assert "saved" in first.message
        assert "already" in second.message
        assert first.level == "info"

    @pytest.mark.asyncio
    async def test_dismiss_notice(self, pipeline):
        view = await reach_results(pipeline)
        notice = view.notices[-1]

        view = pipeline.dismiss_notice(notice.id)

        assert notice not in view.notices
