"""Command line interface for VectorLink.

Example:
    vectorlink sync
    vectorlink status
    vectorlink log --failed
    vectorlink history --conversation default --depth 5
    vectorlink conversations new "Research notes"
"""

import asyncio
import logging
import sys
from typing import Annotated, Optional

import cyclopts
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from vectorlink.config import MAX_HISTORY_DEPTH, VectorLinkConfig, load_config
from vectorlink.conversations.history import HistoryLoader
from vectorlink.conversations.models import Transcript
from vectorlink.conversations.reconstructor import ThreadReconstructor, WalkState
from vectorlink.conversations.store import ConversationStore
from vectorlink.exceptions import ConfigurationError, SyncInProgress, VectorLinkError
from vectorlink.remote.index_client import OpenAIIndexClient
from vectorlink.remote.protocol import FileCitation, URLCitation
from vectorlink.remote.turn_client import OpenAITurnClient
from vectorlink.sync.engine import SyncEngine
from vectorlink.sync.models import SyncReport, SyncState
from vectorlink.sync.operation_log import SyncOperationLog
from vectorlink.sync.scanner import LocalCollectionScanner

app = cyclopts.App(
    name="vectorlink", help="Sync a Markdown vault with an OpenAI vector store"
)
conversations_app = cyclopts.App(name="conversations", help="Manage conversations")
app.command(conversations_app)


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(console: Console) -> VectorLinkConfig:
    try:
        return load_config()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)


def _load_store(config: VectorLinkConfig) -> ConversationStore:
    store = ConversationStore(config.state_file)
    store.load()
    return store


def _build_engine(config: VectorLinkConfig) -> SyncEngine:
    scanner = LocalCollectionScanner(config.require_vault_path(), config.extension)
    return SyncEngine(scanner, OpenAIIndexClient.from_config(config))


def _print_report(console: Console, report: SyncReport) -> None:
    table = Table(title="Sync Results")
    table.add_column("Action", style="cyan")
    table.add_column("Path", style="white")
    table.add_column("Result")

    for path in report.created:
        table.add_row("create", path, "[green]✓[/green]")
    for path in report.updated:
        table.add_row("update", path, "[green]✓[/green]")
    for path in report.deleted:
        table.add_row("delete", path, "[green]✓[/green]")
    for failure in report.failures:
        stage = f" ({failure.stage})" if failure.stage else ""
        table.add_row(
            failure.action,
            failure.path or "",
            f"[red]✗ {failure.reason}{stage}[/red]",
        )

    if report.total:
        console.print(table)
    console.print(
        f"{report.succeeded} succeeded, {len(report.failures)} failed "
        f"in {report.duration:.1f}s ({report.success_rate:.0f}% success)"
    )


def _print_transcript(console: Console, transcript: Transcript) -> None:
    if not transcript.messages:
        console.print("[dim]No messages[/dim]")
        return

    for message in transcript.messages:
        style = "bold cyan" if message.role == "user" else "bold green"
        console.print(f"[{style}]{message.role}[/{style}]")
        console.print(message.content or "[dim](empty)[/dim]", markup=False)

        sources = []
        for annotation in message.annotations:
            if isinstance(annotation, FileCitation):
                sources.append(annotation.filename or annotation.file_id)
            elif isinstance(annotation, URLCitation):
                sources.append(annotation.url)
        if sources:
            console.print(f"[dim]Sources: {', '.join(dict.fromkeys(sources))}[/dim]")
        console.print()


async def _run_sync(config: VectorLinkConfig, queue: bool) -> SyncReport:
    engine = _build_engine(config)
    try:
        return await engine.sync(queue=queue)
    finally:
        await engine.client.aclose()


async def _run_status(config: VectorLinkConfig) -> dict[str, SyncState]:
    engine = _build_engine(config)
    try:
        return await engine.status()
    finally:
        await engine.client.aclose()


async def _run_history(
    config: VectorLinkConfig, conversation_id: str | None, depth: int
) -> HistoryLoader:
    store = _load_store(config)
    client = OpenAITurnClient.from_config(config)
    try:
        loader = HistoryLoader(store, ThreadReconstructor(client, max_depth=depth))
        await loader.load(conversation_id, keep_partial=True)
        return loader
    finally:
        await client.aclose()


@app.command
def sync(
    *,
    queue: Annotated[
        bool, cyclopts.Parameter(help="Wait for a running sync instead of failing")
    ] = False,
    verbose: Annotated[bool, cyclopts.Parameter(help="Enable debug logging")] = False,
):
    """Upload new and changed documents, and remove deleted ones.

    Example:
        vectorlink sync
    """
    _setup_logging(verbose)
    console = _get_console()
    config = _load_config(console)

    try:
        with console.status("[cyan]Syncing vault with vector store..."):
            report = asyncio.run(_run_sync(config, queue))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    except SyncInProgress as e:
        console.print(f"[yellow]{e}[/yellow]")
        sys.exit(1)
    except VectorLinkError as e:
        console.print(f"[red]Sync failed: {e}[/red]")
        sys.exit(1)

    _print_report(console, report)
    if report.failures:
        sys.exit(1)


@app.command
def status(
    *,
    verbose: Annotated[bool, cyclopts.Parameter(help="Enable debug logging")] = False,
):
    """Show which documents are synced with the vector store.

    Example:
        vectorlink status
    """
    _setup_logging(verbose)
    console = _get_console()
    config = _load_config(console)

    try:
        states = asyncio.run(_run_status(config))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    except VectorLinkError as e:
        console.print(f"[red]Status check failed: {e}[/red]")
        sys.exit(1)

    table = Table(title="Sync Status")
    table.add_column("Path", style="white")
    table.add_column("State")
    for path, state in states.items():
        label = "[green]synced[/green]" if state == SyncState.SYNCED else "[yellow]unsynced[/yellow]"
        table.add_row(path, label)
    console.print(table)

    synced = sum(1 for state in states.values() if state == SyncState.SYNCED)
    console.print(f"{synced}/{len(states)} documents synced")


@app.command
def history(
    *,
    conversation: Annotated[
        Optional[str],
        cyclopts.Parameter(help="Conversation id (defaults to the selected one)"),
    ] = None,
    depth: Annotated[
        int, cyclopts.Parameter(help="Maximum number of turns to fetch")
    ] = MAX_HISTORY_DEPTH,
    verbose: Annotated[bool, cyclopts.Parameter(help="Enable debug logging")] = False,
):
    """Print the transcript of a conversation.

    Example:
        vectorlink history --conversation conv-1712345678901
    """
    _setup_logging(verbose)
    console = _get_console()
    config = _load_config(console)

    try:
        loader = asyncio.run(_run_history(config, conversation, depth))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    _print_transcript(console, loader.transcript)
    if loader.state == WalkState.FAILED:
        console.print(f"[red]History incomplete: {loader.error}[/red]")
        sys.exit(1)


@app.command
def log(
    *,
    failed: Annotated[
        bool, cyclopts.Parameter(help="Only show failed operations")
    ] = False,
    path: Annotated[
        Optional[str], cyclopts.Parameter(help="Only show operations for this path")
    ] = None,
    limit: Annotated[
        int, cyclopts.Parameter(help="Maximum number of operations to show")
    ] = 50,
):
    """Show recent entries of the sync operation log.

    Example:
        vectorlink log --failed
    """
    console = _get_console()
    config = _load_config(console)
    try:
        operation_log = SyncOperationLog(config.require_vault_path())
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    if failed:
        operations = operation_log.get_failed_operations()[::-1]
    elif path:
        operations = operation_log.get_operations_for_path(path)[::-1]
    else:
        operations = operation_log.get_recent_operations(limit=limit)
    if failed and path:
        operations = [op for op in operations if op.path == path]
    operations = operations[:limit]

    table = Table(title="Sync Operations")
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Action", style="cyan")
    table.add_column("Path", style="white")
    table.add_column("Result")
    for op in operations:
        if op.status == "success":
            result = "[green]✓[/green]"
        else:
            stage = op.metadata.get("stage")
            suffix = f" ({stage})" if stage else ""
            result = f"[red]✗ {op.error or op.status}{suffix}[/red]"
        table.add_row(
            op.timestamp.strftime("%Y-%m-%d %H:%M:%S"), op.op_type, op.path, result
        )
    if operations:
        console.print(table)

    stats = operation_log.get_statistics()
    console.print(
        f"{stats['total_operations']} logged operations, "
        f"{stats['recent_failures']} failed in the last 24h"
    )


@conversations_app.command(name="list")
def list_conversations():
    """List conversations, marking the selected one."""
    console = _get_console()
    store = _load_store(_load_config(console))

    table = Table(title="Conversations")
    table.add_column("", no_wrap=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Head", style="dim")
    for state in store.list_conversations():
        marker = "*" if state.id == store.selected_id else ""
        table.add_row(marker, state.id, state.name, state.head_pointer or "")
    console.print(table)


@conversations_app.command
def new(
    name: Annotated[str, cyclopts.Parameter(help="Conversation name")],
    *,
    prompt: Annotated[
        Optional[str], cyclopts.Parameter(help="System prompt override")
    ] = None,
):
    """Create a conversation and select it."""
    console = _get_console()
    store = _load_store(_load_config(console))
    state = store.create(name, prompt_override=prompt)
    store.save()
    console.print(f"[green]✓ Created conversation {state.id} ({state.name})[/green]")


@conversations_app.command
def select(
    conversation_id: Annotated[str, cyclopts.Parameter(help="Conversation id")],
):
    """Select the conversation used by default."""
    console = _get_console()
    store = _load_store(_load_config(console))
    try:
        state = store.select(conversation_id)
    except KeyError:
        console.print(f"[red]Unknown conversation: {conversation_id}[/red]")
        sys.exit(1)
    store.save()
    console.print(f"[green]✓ Selected {state.id} ({state.name})[/green]")


@conversations_app.command
def rename(
    conversation_id: Annotated[str, cyclopts.Parameter(help="Conversation id")],
    name: Annotated[str, cyclopts.Parameter(help="New name")],
    *,
    prompt: Annotated[
        Optional[str],
        cyclopts.Parameter(help="System prompt override (empty string clears it)"),
    ] = None,
):
    """Rename a conversation or change its prompt override."""
    console = _get_console()
    store = _load_store(_load_config(console))
    try:
        state = store.update(conversation_id, name=name, prompt_override=prompt)
    except KeyError:
        console.print(f"[red]Unknown conversation: {conversation_id}[/red]")
        sys.exit(1)
    store.save()
    console.print(f"[green]✓ Updated {state.id} ({state.name})[/green]")


@conversations_app.command
def delete(
    conversation_id: Annotated[str, cyclopts.Parameter(help="Conversation id")],
):
    """Delete a conversation."""
    console = _get_console()
    store = _load_store(_load_config(console))
    try:
        store.delete(conversation_id)
    except (KeyError, ValueError) as e:
        console.print(f"[red]{e.args[0]}[/red]")
        sys.exit(1)
    store.save()
    console.print(f"[yellow]Deleted {conversation_id}[/yellow]")


def main():
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
