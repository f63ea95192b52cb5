#!/usr/bin/env python3
"""Ad hoc runner for Recipe Snap.

Drives the whole pipeline from the command line against the real Gemini API:
photo -> ingredients -> recipe ideas -> full recipe for the first idea.

Usage:
    python snap.py images/fridge.jpg
    python snap.py --add "rice" --remove "ketchup" images/fridge.jpg
    python snap.py --manual "tomato, onion, garlic"
    python snap.py --debug https://example.com/fridge.png  # Also dump the final state as JSON

Features:
- Image from a file path, an http(s) URL or a data URI
- Manual ingredient entry without a photo
- Ingredient edits before asking for ideas
- Markdown rendering of the chosen recipe
"""

import asyncio
import sys

from rich.console import Console
from rich.markdown import Markdown

from recipe_snap.inference.gateway import GeminiInferenceGateway
from recipe_snap.inference.images import load_image
from recipe_snap.models.models import RecipeDetail, Stage
from recipe_snap.pipeline.machine import RecipePipeline
from recipe_snap.pipeline.validators import split_ingredient_text
from recipe_snap.utils.errors import ValidationError
from recipe_snap.utils.logger import logger

console = Console()


def recipe_markdown(detail: RecipeDetail) -> str:
    """Render a recipe as markdown for the console."""
    lines = [f"# {detail.name}", "", detail.description, ""]

    facts = [
        ("Prep", detail.prep_time),
        ("Cook", detail.cook_time),
        ("Serves", detail.servings),
    ]
    facts_line = " | ".join(f"**{label}:** {value}" for label, value in facts if value)
    if facts_line:
        lines += [facts_line, ""]

    lines += ["## Ingredients", ""]
    for item in detail.ingredients:
        amount = " ".join(part for part in (item.quantity, item.unit) if part)
        lines.append(f"- {item.name}" + (f" ({amount})" if amount else ""))

    lines += ["", "## Steps", ""]
    lines += [f"{idx}. {step}" for idx, step in enumerate(detail.instructions, start=1)]
    return "\n".join(lines)


def print_notices(pipeline: RecipePipeline) -> None:
    colors = {"info": "cyan", "warning": "yellow", "error": "red"}
    for notice in pipeline.view.notices:
        color = colors.get(notice.level, "white")
        console.print(f"[{color}]● {notice.message}[/{color}]")
        pipeline.dismiss_notice(notice.id)


async def run_snap(
    image_source: str = None,
    manual_text: str = None,
    additions: list = None,
    removals: list = None,
    debug: bool = False,
) -> None:
    """Run one pass through the pipeline and print the outcome.

    Args:
        image_source: Path, URL or data URI of the ingredient photo.
        manual_text: Comma-separated ingredients, used instead of a photo.
        additions: Ingredients to add before asking for ideas.
        removals: Ingredients to remove before asking for ideas.
        debug: If True, print the final pipeline view as JSON.
    """
    pipeline = RecipePipeline(GeminiInferenceGateway())

    if image_source:
        logger.info(f"Loading image: {image_source}")
        try:
            image = await load_image(image_source)
        except ValidationError as e:
            console.print(f"[red]✗ Error: {e.message}[/red]")
            sys.exit(1)
        pipeline.capture_image(image)
        with console.status("Looking at your photo..."):
            view = await pipeline.analyze()
    else:
        view = pipeline.start_manual()
        for name in split_ingredient_text(manual_text):
            pipeline.add_ingredient(name)
        view = pipeline.view

    print_notices(pipeline)
    if view.stage != Stage.REFINE and not view.ingredients:
        sys.exit(1)

    for name in additions or []:
        pipeline.add_ingredient(name)
    for name in removals or []:
        pipeline.remove_ingredient(name)
    print_notices(pipeline)

    console.print(f"[bold]Ingredients:[/bold] {', '.join(pipeline.view.ingredients) or '(none)'}")

    with console.status("Finding recipe ideas..."):
        view = await pipeline.request_ideas()
    print_notices(pipeline)

    if not view.ideas:
        sys.exit(0)

    console.print()
    for idx, idea in enumerate(view.ideas, start=1):
        console.print(f"[bold]{idx}. {idea.name}[/bold] [dim]{idea.description}[/dim]")
    console.print()

    with console.status(f"Writing the recipe for {view.ideas[0].name}..."):
        detail = await pipeline.open_recipe(view.ideas[0])
    print_notices(pipeline)

    if detail is not None:
        console.print(Markdown(recipe_markdown(detail)))

    if debug:
        console.print()
        console.print("[bold cyan]Debug Mode: Pipeline View[/bold cyan]")
        console.print("[dim]" + "=" * 60 + "[/dim]")
        console.print_json(pipeline.view.model_dump_json(exclude={"image"}))
        console.print("[dim]" + "=" * 60 + "[/dim]")


USAGE = 'Usage: python snap.py [--debug] [--add NAME]... [--remove NAME]... (IMAGE | --manual "a, b, c")'


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        print("")
        print("Examples:")
        print("  python snap.py images/fridge.jpg")
        print('  python snap.py --add "rice" images/fridge.jpg')
        print('  python snap.py --manual "tomato, onion, garlic"')
        sys.exit(1)

    debug_mode = False
    manual_text = None
    additions = []
    removals = []
    argv_start = 1

    while argv_start < len(sys.argv) and sys.argv[argv_start].startswith("--"):
        flag = sys.argv[argv_start]
        if flag == "--debug":
            debug_mode = True
            argv_start += 1
        elif flag in ("--manual", "--add", "--remove"):
            argv_start += 1
            if argv_start >= len(sys.argv):
                print(f"Error: {flag} flag requires a value")
                sys.exit(1)
            value = sys.argv[argv_start]
            if flag == "--manual":
                manual_text = value
            elif flag == "--add":
                additions.append(value)
            else:
                removals.append(value)
            argv_start += 1
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)

    image_source = sys.argv[argv_start] if argv_start < len(sys.argv) else None
    if not image_source and manual_text is None:
        print("Error: No image or manual ingredients provided")
        print(USAGE)
        sys.exit(1)

    try:
        asyncio.run(
            run_snap(
                image_source=image_source,
                manual_text=manual_text,
                additions=additions,
                removals=removals,
                debug=debug_mode,
            )
        )
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user.")
        sys.exit(0)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
