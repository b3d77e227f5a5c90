"""
Generate command for Creative Copycat CLI

Run the creative generation pipeline on a local image file.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from ..services.errors import GenerationFailedError
from ..services.models import CopyMode, Region

VALID_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.webp'}


def _load_regions(regions_arg: Optional[str]) -> list:
    """Regions from a JSON string or a path to a JSON file."""
    if not regions_arg:
        return []

    path = Path(regions_arg)
    raw = path.read_text() if path.is_file() else regions_arg
    data = json.loads(raw)
    if isinstance(data, dict):
        data = data.get('regions', [])
    return [Region.model_validate(item) for item in data]


@click.command('generate')
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--copy-mode', default=CopyMode.LOGO_ONLY.value, show_default=True,
              help='logo_only, logo_and_color, minor_character_variation, full_custom, default_mask_edit')
@click.option('--aspect-ratio', default='original', show_default=True, help='"original" or W:H (e.g. 9:16)')
@click.option('--regions', 'regions_arg', default=None, help='Regions as JSON or path to a JSON file')
@click.option('--custom-prompt', default=None, help='Instruction for full_custom')
@click.option('--creative-id', default=None, help='Source creative ID (used in artifact names)')
@click.option('--brand', default=None, help='Brand name replacing competitors')
@click.option('--output-json', type=click.Path(), help='Export the result to a JSON file')
def generate_command(
    image: str,
    copy_mode: str,
    aspect_ratio: str,
    regions_arg: Optional[str],
    custom_prompt: Optional[str],
    creative_id: Optional[str],
    brand: Optional[str],
    output_json: Optional[str],
):
    """
    Generate a branded variation of IMAGE.

    Examples:
        copycat generate ./banner.png --copy-mode logo_only --aspect-ratio 9:16
        copycat generate ./banner.png --regions regions.json --copy-mode logo_and_color
    """
    from ..pipelines.creative_generation import run_creative_generation

    image_path = Path(image)
    if image_path.suffix.lower() not in VALID_EXTENSIONS:
        click.echo(f"❌ Invalid image format. Supported: {', '.join(sorted(VALID_EXTENSIONS))}", err=True)
        sys.exit(1)

    try:
        regions = _load_regions(regions_arg)
    except (ValueError, ValidationError) as e:
        click.echo(f"❌ Invalid regions: {e}", err=True)
        sys.exit(1)

    click.echo(f"🎨 Generating {copy_mode} variation of {image_path.name} ({aspect_ratio})...")

    try:
        result = asyncio.run(run_creative_generation(
            copy_mode,
            source_image_bytes=image_path.read_bytes(),
            aspect_ratio=aspect_ratio,
            regions=regions,
            creative_id=creative_id,
            custom_instruction=custom_prompt,
            brand_name=brand,
        ))
    except GenerationFailedError as e:
        click.echo(f"❌ Generation failed (attempt {e.attempt_id}): {e.message}", err=True)
        sys.exit(1)

    click.echo(f"✅ Done: {result.width}x{result.height} via {result.render_backend}")
    click.echo(f"   Attempt: {result.attempt_id}")
    click.echo(f"   Result:  {result.result_url}")
    if not result.marker_present:
        click.echo("⚠️  Instruction did not mention the brand name after retry")

    if output_json:
        with open(output_json, 'w') as f:
            json.dump(result.model_dump(mode='json'), f, indent=2)
        click.echo(f"\n📄 Result exported to: {output_json}")
