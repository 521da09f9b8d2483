"""CLI entry point for altai."""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from altai import __version__
from altai.config import dump_yaml, load_config as load_config_file
from altai.models.config import Config
from altai.models.page_state import PageState, PublishModule
from altai.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration (file plus environment overrides).

    Raises:
        click.ClickException: If the config has invalid permissions or fails validation
    """
    try:
        return load_config_file(config_path)
    except PermissionError as e:
        logger.error("config_permission_error", path=str(config_path))
        raise click.ClickException(str(e))
    except Exception as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")


def load_entry(entry_path: Path) -> tuple[PageState, dict[str, Any]]:
    """
    Load an entry file into a page state.

    The file is either a full page state (with a `publish` mapping) or a
    plain entry: `{"path": ..., "values": {...}, "blueprint": ...}`.

    Returns:
        (page_state, raw) where raw is the decoded file
    """
    try:
        raw = json.loads(entry_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Could not read entry file {entry_path}: {e}")

    if not isinstance(raw, dict):
        raise click.ClickException(f"Entry file {entry_path} must contain a JSON object")

    if "publish" in raw:
        return PageState.model_validate(raw), raw

    module = PublishModule(
        values=raw.get("values") or {},
        blueprint=raw.get("blueprint"),
        meta=raw.get("meta") or {},
        collection=raw.get("collection"),
    )
    page_state = PageState(
        path=raw.get("path", "/"),
        publish={"base": module},
        host_config=raw.get("host_config") or {},
    )
    return page_state, raw


def save_entry(entry_path: Path, page_state: PageState, raw: dict[str, Any]) -> None:
    """Write updated values back in the same shape the entry was loaded in."""
    if "publish" in raw:
        page_state.dump(entry_path)
        return
    raw["values"] = page_state.publish["base"].values
    entry_path.write_text(json.dumps(raw, indent=2, ensure_ascii=False), encoding="utf-8")


def _print_proposal(proposal) -> None:
    table = Table(title=Text(proposal.message or "Proposed changes"))
    table.add_column("Field", style="cyan")
    table.add_column("Proposed value")
    table.add_column("Reason", style="dim")
    for change in proposal.changes:
        table.add_row(Text(change.field), Text(str(change.proposed_value)), Text(change.reason))
    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="altai")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.config/altai/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path]):
    """altai: AI writing and chat assistant for CMS content editing."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int):
    """Run the HTTP API."""
    import uvicorn
    from altai.web.app import create_app

    config = load_config(ctx.obj["config_path"])
    if not config.has_api_key:
        console.print("[yellow]Warning: no API key configured; requests will fail[/yellow]")

    logger.info("serve_command_started", host=host, port=port)
    uvicorn.run(create_app(config), host=host, port=port)


@cli.command()
@click.argument("action_name", metavar="ACTION")
@click.argument("text")
@click.option("--language", "target_language", help="Target language (translate)")
@click.option("--tone", help="Target tone (adjust_tone)")
@click.pass_context
def action(ctx: click.Context, action_name: str, text: str, target_language: Optional[str], tone: Optional[str]):
    """
    Run a single-shot text action.

    ACTION is one of completion, enhance, summarize, translate, adjust_tone.

    Examples:
        altai action enhance "this are a sentence"
        altai action translate "Hello" --language French
    """
    from altai.services.exceptions import AltAIError
    from altai.services.llm_client import LLMClient

    config = load_config(ctx.obj["config_path"])
    client = LLMClient(config)

    payload: dict[str, Any] = {"text": text}
    if target_language:
        payload["target_language"] = target_language
    if tone:
        payload["tone"] = tone

    logger.info("action_command_started", action=action_name)

    try:
        result = asyncio.run(client.run_action(action_name, payload))
    except AltAIError as e:
        raise click.ClickException(str(e))

    console.print(result, markup=False)


@cli.command()
@click.argument("entry_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("message")
@click.option(
    "--mode",
    type=click.Choice(["chat", "update_fields"]),
    default="chat",
    show_default=True,
    help="update_fields asks for a JSON change proposal",
)
@click.option("--apply", "apply_changes", is_flag=True, help="Apply proposed changes and write them back")
@click.option(
    "--session-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for the conversation transcript (default: ~/.cache/altai/sessions)",
)
@click.pass_context
def chat(
    ctx: click.Context,
    entry_json: Path,
    message: str,
    mode: str,
    apply_changes: bool,
    session_dir: Optional[Path],
):
    """
    Chat about an entry.

    ENTRY_JSON holds the entry being edited (route, field values, blueprint).

    Examples:
        altai chat entry.json "What is this entry about?"
        altai chat entry.json "Improve the title" --mode update_fields --apply
    """
    from altai.llm.prompts import PromptComposer
    from altai.services.conversation import ConversationSession, TranscriptStore
    from altai.services.exceptions import AltAIError
    from altai.services.llm_client import LLMClient

    config = load_config(ctx.obj["config_path"])
    page_state, raw = load_entry(entry_json)

    session = ConversationSession(
        LLMClient(config),
        PromptComposer(config),
        transcript=TranscriptStore(session_dir),
    )

    logger.info("chat_command_started", entry=str(entry_json), mode=mode, apply=apply_changes)

    async def run_turn():
        reply = await session.send(message, page_state, mode)
        console.print(reply.content, markup=False)

        if reply.field_updates is None:
            return

        _print_proposal(reply.field_updates)
        if not apply_changes:
            return

        result = await session.apply_proposal(len(session.history) - 1, page_state)
        console.print(session.history[-1].content, markup=False)
        if result is not None and result.applied_count > 0:
            save_entry(entry_json, page_state, raw)
            logger.info("chat_entry_saved", entry=str(entry_json), applied=result.applied_count)

    try:
        asyncio.run(run_turn())
    except AltAIError as e:
        raise click.ClickException(str(e))


@cli.group("config")
def config_group():
    """Inspect configuration."""


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Print the effective configuration (API key redacted)."""
    config = load_config(ctx.obj["config_path"])
    click.echo(dump_yaml(config), nl=False)


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
