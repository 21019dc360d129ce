"""Flask CLI commands for the reporting hierarchy.

Provides ``flask org roots``, ``flask org tree`` and ``flask org rebuild-paths``.
"""

import click
from flask import current_app
from flask.cli import AppGroup

from ..services.hierarchy_errors import HierarchyError

org_cli = AppGroup("org", help="Reporting hierarchy commands.")


def _service():
    service = current_app.extensions.get("hierarchy_service")
    if service is None:
        click.echo("Error: hierarchy service not available", err=True)
        raise SystemExit(1)
    return service


@org_cli.command("roots")
def roots_command() -> None:
    """List top-of-organisation members in sibling order."""
    roots = _service().find_roots()
    if not roots:
        click.echo("No root members found.")
        return
    for member in roots:
        click.echo(f"{member.id:>6}  {member.name}")


@org_cli.command("tree")
@click.option("--depth", default=None, help="Levels below the roots to include.")
def tree_command(depth: str | None) -> None:
    """Print the forest, one member per line, indented by depth."""
    service = _service()
    try:
        forest = service.build_forest(depth_cap=depth)
    except HierarchyError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not forest.tree:
        click.echo("No members found.")
        return

    # Members hang under their nearest ancestor still in the forest, so a
    # soft-deleted manager does not hide its reports.
    # Depth order guarantees a parent is placed before its reports.
    visible = {member.id for member in forest.tree}
    children: dict[int | None, list] = {}
    for member in forest.tree:
        parent = next((a for a in reversed(member.ancestors) if a in visible), None)
        children.setdefault(parent, []).append(member)

    printed: set[int] = set()

    def _print(member, indent: int) -> None:
        printed.add(member.id)
        click.echo(f"{'  ' * indent}{member.name} [{member.id}]")
        for child in children.get(member.id, ()):
            _print(child, indent + 1)

    for root in forest.roots:
        _print(root, 0)
    for member in children.get(None, ()):
        if member.id not in printed:
            _print(member, 0)

    click.echo(f"\n{len(forest.tree)} member{'s' if len(forest.tree) != 1 else ''} (max depth {forest.max_depth})")


@org_cli.command("rebuild-paths")
def rebuild_paths_command() -> None:
    """Re-derive every member's ancestors and depth from primary managers."""
    report = _service().rebuild_paths()
    click.echo(f"Updated {report.updated} member path(s).")
    if report.unresolved:
        ids = ", ".join(str(i) for i in report.unresolved)
        click.echo(f"Unresolved (missing or looping primary manager): {ids}", err=True)
        raise SystemExit(2)
