"""
src/cli/main.py: CLI entry point using Click

Commands:
- scan IMAGE --reference 45210 - Read an odometer photo and confirm the value
- resolve "TEXT" --reference 45210 - Run the reading heuristic on OCR text
- prepare IMAGE OUT - Write the OCR-ready version of a photo
"""

import asyncio
import json
import logging
from pathlib import Path

import click
from tqdm import tqdm

from src.config import LOG_LEVEL, LOG_FORMAT, OCR_LANG

# Setup logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)

FAILURE_MESSAGES = {
    'decode_error': "The photo could not be read. Please take a new picture.",
    'recognition_error': "Text recognition failed. Please try scanning again.",
    'no_reading_found': "No odometer reading found in the photo. Try a clearer photo or enter the value manually.",
}


def _as_number(value):
    """Keep whole kilometer values as int."""
    if value is None:
        return None
    return int(value) if float(value).is_integer() else value


def _get_engine(ctx):
    """OCR engine from the click context (tests inject one), else Tesseract."""
    engine = (ctx.obj or {}).get('engine')
    if engine is None:
        from src.ocr import TesseractOCRService
        engine = TesseractOCRService()
    return engine


def _snapshot_dict(session) -> dict:
    snapshot = session.snapshot()
    return {
        'session_id': snapshot.session_id,
        'state': snapshot.state.value,
        'reference_value': snapshot.reference_value,
        'resolution': snapshot.resolution.to_dict() if snapshot.resolution else None,
        'failure_reason': snapshot.failure_reason.value if snapshot.failure_reason else None,
        'confirmed_value': snapshot.confirmed_value,
    }


@click.group()
@click.pass_context
def cli(ctx):
    """Odometer Scan CLI"""
    ctx.ensure_object(dict)


@cli.command()
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--reference', type=float, default=None, help='Previously recorded odometer value (km)')
@click.option('--lang', default=OCR_LANG, help=f'OCR language code (default: {OCR_LANG})')
@click.option('--yes', 'auto_accept', is_flag=True, help='Accept the best reading without asking')
@click.option('--json', 'as_json', is_flag=True, help='Print the session result as JSON')
@click.pass_context
def scan(ctx, image_path, reference, lang, auto_accept, as_json):
    """
    Read the odometer value from a photo

    Example: scan odometer.jpg --reference 45210

    This command:
    1. Preprocesses the photo (grayscale, contrast, resize)
    2. Runs OCR with a progress bar
    3. Picks the most likely reading using the reference value
    4. Asks for confirmation (best reading, an alternative, or cancel)
    """
    from src.errors import CaptureError
    from src.scan import ScanSession, ScanState, capture_from_file

    session = ScanSession(_get_engine(ctx), reference_value=_as_number(reference), lang=lang)

    try:
        session.capture(capture_from_file(image_path))
    except CaptureError as e:
        raise click.ClickException(str(e))

    with tqdm(total=100, desc="Recognizing digits", unit="%", disable=as_json) as bar:
        def on_change(s):
            if s.state is ScanState.RECOGNIZING and s.progress > bar.n:
                bar.update(s.progress - bar.n)

        unsubscribe = session.subscribe(on_change)
        try:
            asyncio.run(session.run())
        finally:
            unsubscribe()

    if session.state is ScanState.FAILED:
        if as_json:
            click.echo(json.dumps(_snapshot_dict(session), indent=2))
        raise click.ClickException(FAILURE_MESSAGES[session.failure_reason.value])

    resolution = session.resolution
    if auto_accept:
        session.accept(resolution.best_candidate)
    else:
        choices = resolution.choices
        click.echo(f"Recognized reading: {choices[0]} km")
        for idx, value in enumerate(choices[1:], start=1):
            click.echo(f"  [{idx}] {value}")

        answer = click.prompt(
            "Accept [0], pick an alternative, or 'c' to cancel",
            default='0'
        ).strip().lower()

        if answer == 'c':
            session.dismiss()
        elif answer.isdigit() and int(answer) < len(choices):
            session.accept(choices[int(answer)])
        else:
            session.dismiss()
            raise click.ClickException(f"Invalid choice: {answer}")

    if as_json:
        click.echo(json.dumps(_snapshot_dict(session), indent=2))
    elif session.state is ScanState.CONFIRMED:
        click.echo(f"Confirmed: {session.confirmed_value} km")
    else:
        click.echo("Cancelled, no value recorded")


@cli.command()
@click.argument('text')
@click.option('--reference', type=float, default=None, help='Previously recorded odometer value (km)')
def resolve(text, reference):
    """
    Run the reading heuristic on OCR text

    Example: resolve "O123b 4521 4800" --reference 4600
    """
    from src.ocr import normalize_text, extract_candidates, resolve_reading

    normalized = normalize_text(text)
    candidates = extract_candidates(normalized)
    resolution = resolve_reading(candidates, _as_number(reference))

    click.echo(json.dumps({
        'normalized_text': normalized,
        'candidates': [c.value for c in candidates],
        **resolution.to_dict(),
    }, indent=2))


@cli.command()
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_path', type=click.Path(dir_okay=False))
def prepare(image_path, output_path):
    """
    Write the preprocessed (OCR-ready) version of a photo

    Example: prepare odometer.jpg odometer_prepared.png
    """
    from src.errors import CaptureError, DecodeError
    from src.preprocessing import prepare_image
    from src.scan import capture_from_file

    try:
        prepared = prepare_image(capture_from_file(image_path))
    except (CaptureError, DecodeError) as e:
        raise click.ClickException(str(e))

    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(prepared.to_png_bytes())
    logger.info(f"Prepared image {prepared.width}x{prepared.height} written to {out_path}")
    click.echo(str(out_path))


if __name__ == '__main__':
    cli()
