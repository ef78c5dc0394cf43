from __future__ import annotations

import json
from typing import Any, Callable, TypeVar

import typer
from pydantic import ValidationError

from shortslab.config.settings import Settings
from shortslab.exceptions import ConfigurationError, ShortsLabError
from shortslab.pipeline import Pipeline
from shortslab.services.styles import CaptionPosition, CaptionStyle, style_profile
from shortslab.utils.doctor import run_doctor
from shortslab.utils.logging import configure_logging, get_logger

app = typer.Typer(add_completion=False)
log = get_logger(__name__)

T = TypeVar("T")


def _guarded(fn: Callable[[], T]) -> T:
    """Run `fn`, turning ShortsLabError into a labelled stderr line and its exit code."""
    try:
        return fn()
    except ShortsLabError as exc:
        typer.echo(f"{exc.label()}: {exc.message}", err=True)
        raise typer.Exit(code=exc.exit_code or 1) from exc


def _load_settings(overrides: dict[str, Any] | None = None) -> Settings:
    try:
        settings = Settings()
        for key, value in (overrides or {}).items():
            if value is not None:
                setattr(settings, key, value)
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigurationError(errors) from exc
    return settings


def _echo_progress(percent: int, message: str) -> None:
    typer.echo(f"[{percent:3d}%] {message}")


def _run_pipeline(source: str, settings: Settings, run_id: str | None):
    return Pipeline().run(source, settings, on_progress=_echo_progress, run_id=run_id)


@app.command()
def config() -> None:
    """Print resolved config."""
    s = _guarded(_load_settings)
    typer.echo(json.dumps(s.to_public_dict(), indent=2))


@app.command()
def styles() -> None:
    """List caption style presets."""
    size = _guarded(_load_settings).caption_size
    typer.echo("style\tfont\tsize\tprimary\toutline\tborder")
    for style in CaptionStyle:
        p = style_profile(style, size)
        typer.echo(
            f"{style.value}\t{p.font}\t{p.size}\t{p.primary_color}\t"
            f"{p.outline_color}\t{p.border_style}"
        )
    typer.echo("")
    typer.echo("positions: " + ", ".join(pos.value for pos in CaptionPosition))


@app.command()
def doctor() -> None:
    """Run environment diagnostics."""
    code = _guarded(lambda: run_doctor(_load_settings()))
    raise typer.Exit(code=code)


@app.command()
def process(
    source: str = typer.Argument(..., help="Source video file."),
    duration: float = typer.Option(None, help="Clip length in seconds, 15-60 (overrides config)."),
    style: str = typer.Option(None, help="Caption style: clean, neon, boxed, punchy."),
    size: int = typer.Option(None, help="Caption font size (overrides config)."),
    position: str = typer.Option(None, help="Caption position: bottom, middle."),
    word_level: bool = typer.Option(
        None,
        "--word-level/--line-level",
        help="One caption per spoken word instead of line captions.",
    ),
    offset_ms: int = typer.Option(None, help="Manual caption offset in ms, -1000..1000."),
    speed: int = typer.Option(None, help="Caption speed in percent, 80-140."),
    min_word_ms: int = typer.Option(None, help="Minimum caption duration in ms, 50-300."),
    burn: bool = typer.Option(None, "--burn/--no-burn", help="Burn captions into the clip."),
    language: str = typer.Option(None, help="Spoken language code or 'auto'."),
    model: str = typer.Option(None, help="Speech model size tier (overrides config)."),
    accelerator: bool = typer.Option(None, help="Let the speech engine use a GPU."),
    output_dir: str = typer.Option(None, help="Directory for the finished clip."),
    workdir: str = typer.Option(None, help="Workdir for transient artifacts (overrides config)."),
    run_id: str = typer.Option(None, help="Explicit run id (default: random)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Cut a vertical short with captions from SOURCE."""
    overrides = {
        "target_duration": duration,
        "caption_style": style,
        "caption_size": size,
        "caption_position": position,
        "word_level_captions": word_level,
        "caption_offset_ms": offset_ms,
        "caption_speed": speed,
        "min_word_duration_ms": min_word_ms,
        "burn_captions": burn,
        "speech_language": language,
        "speech_model": model,
        "use_accelerator": accelerator,
        "output_dir": output_dir,
        "workdir": workdir,
    }
    settings = _guarded(lambda: _load_settings(overrides))

    # Configure logging after overrides so we use the final resolved level
    configure_logging(log_level or settings.log_level)
    log.debug("Settings: %s", settings.to_public_dict())

    out = _guarded(lambda: _run_pipeline(source, settings, run_id))
    typer.echo(f"✅ Done. Output: {out}")


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
