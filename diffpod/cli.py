"""CLI entry point for diffpod."""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

import click


# Default config template
CONFIG_TEMPLATE = """\
version: "1"

diff:
  output_dir: llm/diff  # Relative: used as-is. Absolute: <dir>/<repo name>/
  large_file_changes_threshold: 100  # More +/- lines than this: summary only
  large_file_lines_threshold: 500  # More lines than this: summary only
  max_consecutive_empty_lines: 2
"""


@click.group()
def cli() -> None:
    """diffpod: minimize git diffs for LLM context and track chunked review."""


@cli.command()
@click.option(
    "--project-root",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Project root directory (default: cwd).",
)
def init(project_root: str) -> None:
    """Create .diffpod/config.yaml with default settings."""
    from diffpod.config import load_config, repo_config_path

    root = Path(project_root)
    config_path = repo_config_path(root)

    if config_path.exists():
        click.echo(f"{config_path} already exists")
        raise SystemExit(1)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(CONFIG_TEMPLATE)
    click.echo(f"Created {config_path}")

    # Load config through the standard path to validate it
    load_config(root)


@cli.command("diff")
@click.argument("diff_input", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--save", is_flag=True, help="Save diff chunks to separate files with REVIEW.md.")
@click.option(
    "--save-path",
    default=None,
    help="Output directory for --save (default: diff.output_dir from config).",
)
@click.option(
    "--context",
    "review_context",
    default=None,
    help="Context line for REVIEW.md (e.g. reference documentation).",
)
@click.option(
    "--project-root",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Project root directory (default: cwd).",
)
@click.option("-v", "--verbose", count=True, help="Log progress to stderr (-vv for debug).")
def diff_cmd(
    diff_input: TextIO,
    save: bool,
    save_path: str | None,
    review_context: str | None,
    project_root: str,
    verbose: int,
) -> None:
    """Minimize a git diff read from DIFF_INPUT (default: stdin).

    With --save, each file's diff is written to chunk_<suffix>.diff and
    review state is tracked in REVIEW.md. Only one run at a time may
    target the same output directory.
    """
    import logging

    from diffpod.config import ConfigError, diff_settings, load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose > 1 else logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    root = Path(project_root)
    try:
        settings = diff_settings(load_config(root))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        content = diff_input.read()
    except UnicodeDecodeError as exc:
        raise click.ClickException(f"Input is not valid UTF-8: {exc}") from exc

    if save:
        _save(content, save_path or settings["output_dir"], root, review_context, settings)
        return

    from diffpod.minimize import minimize_diff
    from diffpod.parse import parse_diff

    parsed = parse_diff(
        content,
        changes_threshold=settings["large_file_changes_threshold"],
        lines_threshold=settings["large_file_lines_threshold"],
    )
    click.echo(
        minimize_diff(parsed.changes, max_blank_lines=settings["max_consecutive_empty_lines"]),
        nl=False,
    )


def _save(
    content: str,
    save_path: str,
    project_root: Path,
    review_context: str | None,
    settings: dict,
) -> None:
    from diffpod.context import RunContext
    from diffpod.save import save_diff_chunks

    ctx = RunContext.from_environment(project_root)
    try:
        result = save_diff_chunks(
            content,
            save_path,
            ctx,
            context=review_context,
            changes_threshold=settings["large_file_changes_threshold"],
            lines_threshold=settings["large_file_lines_threshold"],
        )
    except OSError as exc:
        raise click.ClickException(str(exc)) from exc

    # Machine-readable: consumed by scripts
    click.echo(f"generated: {result.display_dir}/")
    click.echo(f"REVIEW.md: {result.review_path}")
