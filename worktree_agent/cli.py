import functools
import json
from collections.abc import Callable
from typing import Any

import click

from worktree_agent.core.models.enums import DriftState
from worktree_agent.core.probes.command import CommandError
from worktree_agent.core.status import INFO_FORMATS, render_info

_DRIFT_ICONS = {
    DriftState.OK: "●",
    DriftState.ORPHANED_NO_SESSION: "○",
    DriftState.ORPHANED_DELETED_PATH: "⚠",
    DriftState.STALE: "✗",
}


def _bootstrap():
    """Load settings and configure logging for one CLI invocation."""
    from worktree_agent.core.log import setup_logging
    from worktree_agent.core.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)
    return settings


def _store(settings):
    from worktree_agent.core.store.local import JsonMetadataStore

    return JsonMetadataStore(settings.metadata_path)


def _sessions(settings):
    from worktree_agent.core.probes.tmux import TmuxSessions

    return TmuxSessions(timeout=settings.probe_timeout)


def _manager(settings):
    from worktree_agent.core.managers.workspaces import WorkspaceManager
    from worktree_agent.core.probes.git import GitWorktrees

    return WorkspaceManager(_store(settings), _sessions(settings), GitWorktrees(), settings)


def _classifier(settings, store):
    from worktree_agent.core.activity.classifier import ActivityClassifier
    from worktree_agent.core.probes.process import PsutilProcesses

    return ActivityClassifier(
        _sessions(settings),
        PsutilProcesses(settings.cpu_sample_interval),
        store=store,
        settings=settings,
    )


def _reconciler(settings, store):
    from worktree_agent.core.probes.filesystem import LocalPaths
    from worktree_agent.core.reconcile import Reconciler

    return Reconciler(store, _sessions(settings), LocalPaths(), storage_root=settings.storage_root)


def domain_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Translate domain exceptions into ``click.ClickException`` (exit status 1)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except LookupError as exc:
            raise click.ClickException(f"Not found: {exc}") from exc
        except (ValueError, CommandError) as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


def _require_id(manager, workspace_id: str | None) -> str:
    workspace_id = workspace_id or manager.resolve_current()
    if not workspace_id:
        raise click.ClickException("Could not determine workspace; pass its ID")
    return workspace_id


@click.group()
def main() -> None:
    """tmux-worktree-agent - git worktree + tmux session + AI agent workspaces."""


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@main.command()
@click.argument("topic")
@click.option("--repo", "repo_path", default=".", show_default=True, help="Path inside the source repository.")
@click.option("--branch", default=None, help="Branch to check out (default: new wt/<topic> off HEAD).")
@click.option("--new-branch", is_flag=True, default=False, help="Create --branch instead of checking it out.")
@click.option("--agent", default=None, help="Agent command to launch (default: WORKTREE_AGENT_CMD).")
@click.option("--no-agent", is_flag=True, default=False, help="Do not launch an agent.")
@domain_errors
def create(topic: str, repo_path: str, branch: str | None, new_branch: bool, agent: str | None, no_agent: bool) -> None:
    """Create a working copy, tmux session and agent for TOPIC."""
    from worktree_agent.core.managers.workspaces import BranchNotFoundError

    settings = _bootstrap()
    manager = _manager(settings)
    agent = "" if no_agent else agent
    try:
        wid, record = manager.create(repo_path, topic, branch=branch, new_branch=new_branch, agent=agent)
    except BranchNotFoundError:
        if not click.confirm(f"Branch '{branch}' doesn't exist. Create new branch?"):
            click.echo("Cancelled")
            return
        wid, record = manager.create(repo_path, topic, branch=branch, new_branch=True, agent=agent)
    click.echo(f"Session created: {wid} ({record.branch} @ {record.working_copy_path})")


@main.command()
@click.argument("workspace_id", required=False)
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@domain_errors
def kill(workspace_id: str | None, yes: bool) -> None:
    """Kill the session, remove the working copy and delete the record."""
    settings = _bootstrap()
    manager = _manager(settings)
    sessions = _sessions(settings)
    workspace_id = _require_id(manager, workspace_id)

    store = _store(settings)
    record = store.get(workspace_id)
    if record is None:
        if not sessions.session_exists(workspace_id):
            raise click.ClickException(f"Session '{workspace_id}' not found")
        if yes or click.confirm(f"'{workspace_id}' has no metadata. Kill tmux session anyway?"):
            sessions.kill_session(workspace_id)
            click.echo("Session killed")
        return

    click.echo(f"Session: {workspace_id}\nBranch:  {record.branch}\nTopic:   {record.topic}")
    click.echo(f"Path:    {record.working_copy_path}")
    if not yes and not click.confirm("Kill session and remove worktree?"):
        click.echo("Cancelled")
        return
    manager.teardown(workspace_id)
    click.echo(f"Cleanup complete: {workspace_id}")


# ---------------------------------------------------------------------------
# Reconciliation and repairs
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the summary as JSON.")
@click.option("--no-untracked", is_flag=True, default=False, help="Skip the untracked working-copy scan.")
@domain_errors
def reconcile(as_json: bool, no_untracked: bool) -> None:
    """Detect drift between records, sessions and working copies; drop stale records."""
    settings = _bootstrap()
    store = _store(settings)
    summary = _reconciler(settings, store).reconcile(scan_untracked=not no_untracked)

    if as_json:
        click.echo(summary.model_dump_json(indent=2))
        return

    click.echo("Reconciliation Summary")
    if summary.ok:
        click.echo(f"  ✓ {summary.ok} sessions OK")
    if summary.orphaned_deleted_path:
        click.echo(f"  ⚠ {summary.orphaned_deleted_path_count} orphaned (worktree deleted)")
    if summary.orphaned_no_session:
        click.echo(f"  ⚠ {summary.orphaned_no_session_count} orphaned (no session)")
    if summary.stale:
        click.echo(f"  ✗ {summary.stale} stale metadata cleaned")

    for entry in summary.orphaned_deleted_path:
        click.echo(f"  ⚠ {entry.workspace_id} ({entry.branch})  -> wtagent recreate | wtagent kill")
    for entry in summary.orphaned_no_session:
        click.echo(f"  ○ {entry.workspace_id} ({entry.branch}) - {entry.path}")
        click.echo("      -> wtagent attach | wtagent remove-path")
    for path in summary.untracked:
        click.echo(f"  ? untracked worktree: {path}  -> wtagent adopt | wtagent remove-untracked")

    if summary.in_sync:
        click.echo("All sessions are in sync!")


@main.command("list")
@domain_errors
def list_workspaces() -> None:
    """List workspaces with their drift state (stale entries are cleaned first)."""
    settings = _bootstrap()
    store = _store(settings)
    reconciler = _reconciler(settings, store)
    cleaned = reconciler.clean_stale()
    if cleaned:
        click.echo(f"Cleaned {len(cleaned)} stale metadata entries", err=True)
    for wid, record in sorted(store.items()):
        state = reconciler.classify_record(wid, record)
        click.echo(f"{_DRIFT_ICONS[state]:<2} {wid:<30} {record.branch:<25} {record.working_copy_path}")


@main.command()
@click.argument("workspace_id")
@domain_errors
def recreate(workspace_id: str) -> None:
    """Re-create the deleted working copy of WORKSPACE_ID."""
    settings = _bootstrap()
    path = _manager(settings).recreate_path(workspace_id)
    click.echo(f"Worktree recreated: {path}")


@main.command()
@click.argument("workspace_id")
@domain_errors
def attach(workspace_id: str) -> None:
    """Start a new session for the existing working copy of WORKSPACE_ID."""
    settings = _bootstrap()
    _manager(settings).create_session(workspace_id)
    click.echo(f"Session created: {workspace_id}")


@main.command("remove-path")
@click.argument("workspace_id")
@domain_errors
def remove_path(workspace_id: str) -> None:
    """Delete the working copy (and record) of a workspace without a session."""
    settings = _bootstrap()
    _manager(settings).delete_path(workspace_id)
    click.echo(f"Worktree removed: {workspace_id}")


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@domain_errors
def adopt(path: str) -> None:
    """Create a record for an untracked working copy."""
    settings = _bootstrap()
    wid, _ = _manager(settings).adopt(path)
    click.echo(f"Adopted: {wid}")


@main.command("remove-untracked")
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@domain_errors
def remove_untracked(path: str, yes: bool) -> None:
    """Delete an untracked working copy."""
    settings = _bootstrap()
    if not yes and not click.confirm(f"Remove {path}?"):
        click.echo("Cancelled")
        return
    _manager(settings).remove_untracked(path)
    click.echo(f"Removed: {path}")


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@main.command()
@domain_errors
def status() -> None:
    """Compact agent status for every live workspace (for tmux status-right)."""
    from worktree_agent.core.status import render_status_line

    settings = _bootstrap()
    store = _store(settings)
    line = render_status_line(store.items(), _classifier(settings, store), max_topic_len=settings.max_topic_len)
    if line:
        click.echo(line)


@main.command("agent-status")
@click.argument("workspace_id", required=False)
@click.option("--json", "as_json", is_flag=True, default=False)
@domain_errors
def agent_status(workspace_id: str | None, as_json: bool) -> None:
    """Agent state of one workspace: active, prompt, off or dead."""
    settings = _bootstrap()
    store = _store(settings)
    workspace_id = _require_id(_manager(settings), workspace_id)
    report = _classifier(settings, store).inspect(workspace_id)
    if as_json:
        payload = {
            "workspace_id": workspace_id,
            "status": str(report.status),
            "agent": report.agent,
            "panes": [
                {"pane_id": p.pane_id, "pid": p.pid, "agent": p.agent, "state": str(p.state)} for p in report.panes
            ],
        }
        click.echo(json.dumps(payload))
    else:
        click.echo(f"{report.status.glyph} {report.status}")


@main.command()
@click.argument("workspace_id", required=False)
@click.option("--format", "fmt", type=click.Choice(INFO_FORMATS), default="full", show_default=True)
@domain_errors
def info(workspace_id: str | None, fmt: str) -> None:
    """Print metadata of a workspace (current one by default)."""
    settings = _bootstrap()
    manager = _manager(settings)
    workspace_id = workspace_id or manager.resolve_current()
    record = _store(settings).get(workspace_id) if workspace_id else None
    if record is None:
        click.echo("" if fmt == "icon" else "Regular session")
        return
    click.echo(render_info(workspace_id, record, fmt))


# ---------------------------------------------------------------------------
# Description
# ---------------------------------------------------------------------------


@main.group()
def describe() -> None:
    """Read or set a workspace's free-text description."""


@describe.command("get")
@click.argument("workspace_id", required=False)
@domain_errors
def describe_get(workspace_id: str | None) -> None:
    settings = _bootstrap()
    manager = _manager(settings)
    click.echo(manager.description(_require_id(manager, workspace_id)))


@describe.command("set")
@click.argument("args", nargs=-1, required=True)
@domain_errors
def describe_set(args: tuple[str, ...]) -> None:
    """Set the description: ``set <text>`` for the current workspace, ``set <id> <text>`` otherwise."""
    settings = _bootstrap()
    manager = _manager(settings)
    if len(args) == 1:
        workspace_id, text = _require_id(manager, None), args[0]
    else:
        workspace_id, text = args[0], " ".join(args[1:])
    manager.describe(workspace_id, text)
    click.echo(f"Description updated for session '{workspace_id}'")


# ---------------------------------------------------------------------------
# Store maintenance
# ---------------------------------------------------------------------------


@main.group()
def store() -> None:
    """Metadata store maintenance."""


@store.command("list")
@domain_errors
def store_list() -> None:
    settings = _bootstrap()
    for wid in sorted(_store(settings).list_ids()):
        click.echo(wid)


@store.command("export")
@domain_errors
def store_export() -> None:
    from worktree_agent.core.status import export_text

    settings = _bootstrap()
    click.echo(export_text(sorted(_store(settings).items())))


@store.command("backup")
@domain_errors
def store_backup() -> None:
    settings = _bootstrap()
    path = _store(settings).backup()
    click.echo(str(path) if path else "Nothing to back up")


@store.command("restore")
@click.argument("backup_path", type=click.Path(dir_okay=False))
@domain_errors
def store_restore(backup_path: str) -> None:
    settings = _bootstrap()
    if not _store(settings).restore(backup_path):
        raise click.ClickException(f"Backup not found: {backup_path}")
    click.echo(f"Restored from {backup_path}")


@store.command("reset")
@click.option("--yes", "-y", is_flag=True, default=False)
@domain_errors
def store_reset(yes: bool) -> None:
    """Back up the store file (even if corrupted) and start empty."""
    settings = _bootstrap()
    if not yes and not click.confirm("Reset the metadata store?"):
        click.echo("Cancelled")
        return
    path = _store(settings).reset()
    click.echo(f"Store reset (previous contents: {path or 'none'})")


if __name__ == "__main__":
    main()
