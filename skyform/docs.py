"""Schema documentation rendered with Rich.

``render_schema`` draws a resource as a tree (nested attributes become
branches), ``schema_table`` as a flat table. ``print_provider_docs`` prints
both for every registered resource and data source.
"""

from __future__ import annotations

from collections.abc import Mapping

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from skyform.core.schema import Attribute, ListNestedAttribute, Schema, SingleNestedAttribute
from skyform.provider import Provider

MODE_STYLES = {
    "required": "bold red",
    "optional": "green",
    "optional, computed": "cyan",
    "computed": "dim",
}


def _label(name: str, attribute: Attribute) -> Text:
    text = Text()
    text.append(name, style="bold")
    text.append(f" ({attribute.kind}", style="dim")
    text.append(", ", style="dim")
    text.append(attribute.mode, style=MODE_STYLES.get(attribute.mode, ""))
    if attribute.sensitive:
        text.append(", sensitive", style="yellow")
    if attribute.requires_replace:
        text.append(", forces replacement", style="magenta")
    text.append(")", style="dim")
    if attribute.description:
        text.append(f"  {attribute.description}")
    return text


def _add_attributes(tree: Tree, attributes: Mapping[str, Attribute]) -> None:
    for name in sorted(attributes):
        attribute = attributes[name]
        branch = tree.add(_label(name, attribute))
        if isinstance(attribute, SingleNestedAttribute | ListNestedAttribute):
            _add_attributes(branch, attribute.attributes)


def render_schema(type_name: str, schema: Schema) -> Tree:
    tree = Tree(Text(type_name, style="bold yellow"))
    if schema.description:
        tree.add(Text(schema.description, style="italic"))
    _add_attributes(tree, schema.attributes)
    return tree


def schema_table(schema: Schema) -> Table:
    """Top-level attributes only; nested ones are listed by name."""
    table = Table(title=schema.description or None, show_lines=False)
    table.add_column("Attribute", style="bold")
    table.add_column("Type")
    table.add_column("Mode")
    table.add_column("Description")

    for name in sorted(schema.attributes):
        attribute = schema.attributes[name]
        description = attribute.description
        if isinstance(attribute, SingleNestedAttribute | ListNestedAttribute):
            nested = ", ".join(sorted(attribute.attributes))
            description = f"{description} Attributes: {nested}.".strip()
        table.add_row(
            name,
            attribute.kind,
            Text(attribute.mode, style=MODE_STYLES.get(attribute.mode, "")),
            description,
        )
    return table


def print_provider_docs(provider: Provider, console: Console | None = None) -> None:
    console = console or Console()
    for heading, names, lookup in (
        ("Resources", provider.resources, provider.resource),
        ("Data sources", provider.data_sources, provider.data_source),
    ):
        console.rule(heading)
        for name in names:
            schema = lookup(name).schema()
            console.print(Group(render_schema(name, schema), schema_table(schema)))


__all__ = ["render_schema", "schema_table", "print_provider_docs"]
