"""Migration file writer - generates Python source for new definition files."""

from __future__ import annotations

from schemachain._naming import migration_filename
from schemachain.migrations.operations import Operation, RunPython


def _repr_str_list(items: list[str], indent: str = "    ") -> str:
    """Render a list of strings as a formatted Python list."""
    if not items:
        return "[]"
    if len(items) == 1:
        return f"[{items[0]!r}]"
    lines = [f"{indent}    {item!r}," for item in items]
    return "[\n" + "\n".join(lines) + f"\n{indent}]"


def _render_operation(op: Operation) -> str:
    """Render a single operation as a Python constructor call."""
    if isinstance(op, RunPython):
        raise TypeError("RunPython operations cannot be rendered; write them by hand")
    # Dataclass reprs are valid constructor calls for the declarative operations
    return f"ops.{op!r}"


def _docstring_line(text: str) -> str:
    """Escape text for the body of a triple-quoted docstring."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def generate_migration(
    revision: str,
    down_revision: str | None,
    description: str,
    *,
    depends_on: list[str] | None = None,
    operations: list[Operation] | None = None,
    created: str | None = None,
) -> tuple[str, str]:
    """Generate a migration definition file.

    Returns (filename, content).
    """
    filename = migration_filename(revision, description)
    depends_on = depends_on or []
    operations = operations or []

    lines = [
        f'"""{_docstring_line(description) or "Migration"}',
        "",
        f"Revision: {revision}",
        f"Revises: {down_revision or '<base>'}",
    ]
    if created:
        lines.append(f"Created: {created}")
    lines += [
        '"""',
        "",
        "from schemachain.migrations import Migration",
        "from schemachain.migrations import operations as ops",
        "",
        "",
        "class M(Migration):",
        f"    revision = {revision!r}",
        f"    down_revision = {down_revision!r}",
        f"    depends_on = {_repr_str_list(depends_on)}",
        f"    description = {description!r}",
        "",
    ]

    if operations:
        lines.append("    operations = [")
        for op in operations:
            lines.append(f"        {_render_operation(op)},")
        lines.append("    ]")
        lines.append("")
    else:
        lines += [
            "    def upgrade(self, ctx):",
            "        pass",
            "",
            "    def downgrade(self, ctx):",
            "        pass",
            "",
        ]

    return filename, "\n".join(lines)
