"""Command-line interface for flatlua code generation."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flatlua._logging import configure_logging, logger
from flatlua.generator import GeneratorOptions, LuaGenerator, parse, write_artifacts
from flatlua.generator.errors import GeneratorError, ValidationError
from flatlua.generator.types import Schema


@click.group()
def cli() -> None:
    """FlatBuffers to Lua code generator."""


def _load_schema(input_file: str) -> Schema:
    """Read a .fbs schema, or a schema AST previously dumped as JSON.

    A JSON AST already carries its layout, so slots and offsets are used as given.
    """
    with open(input_file, encoding="utf-8") as f:
        text = f.read()

    if Path(input_file).suffix == ".json":
        try:
            return Schema.from_json(text)
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid schema AST: {e}") from e
    return parse(text)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema (.fbs or .json)")
@click.option("--output", "-o", "output_dir", required=True, help="Output directory")
@click.option(
    "--object-api",
    "object_api",
    is_flag=True,
    default=False,
    help="Generate the object API (T mirror type, Pack and UnPack)",
)
@click.option(
    "--empty-vectors-as-absent",
    is_flag=True,
    default=False,
    help="Treat empty vectors as absent in the object API",
)
@click.option(
    "--allow-unsupported",
    is_flag=True,
    default=False,
    help="Emit a runtime error() for unsupported shapes instead of failing",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log every generated file")
def gen(
    input_file: str,
    output_dir: str,
    object_api: bool,
    empty_vectors_as_absent: bool,
    allow_unsupported: bool,
    verbose: bool,
) -> None:
    """Generate Lua modules from a schema file."""
    configure_logging(logging.DEBUG if verbose else logging.WARNING)

    options = GeneratorOptions(
        generate_object_api=object_api,
        empty_vectors_as_absent=empty_vectors_as_absent,
        allow_unsupported=allow_unsupported,
    )

    try:
        schema = _load_schema(input_file)
        artifacts = LuaGenerator(schema, options).generate()
    except (ValidationError, GeneratorError) as e:
        _fail(e)

    written = write_artifacts(artifacts, output_dir)
    logger.info("generated %d files in %s", len(written), output_dir)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema (.fbs or .json)")
@click.option("--json", "output_json", is_flag=True, help="Output the resolved schema as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display schema definitions and struct layouts."""
    try:
        schema = _load_schema(input_file)
    except ValidationError as e:
        _fail(e)

    if output_json:
        print(schema.to_json(indent=2))
    else:
        _output_plain(schema)


def _fail(error: Exception) -> NoReturn:
    """Report an error in red and exit with status 1."""
    Console(stderr=True).print(f"[red]Error:[/red] {escape(str(error))}")
    sys.exit(1)


def _output_plain(schema: Schema) -> None:
    """Output schema info using rich text formatting."""
    console = Console()

    if schema.root_type:
        console.print(f"[bold cyan]Root type[/bold cyan] {schema.root_type}")
        console.print()

    if schema.enums:
        console.print("[bold cyan]Enums[/bold cyan]")
        enum_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        enum_table.add_column("Name", style="white")
        enum_table.add_column("Kind", style="dim")
        enum_table.add_column("Values", style="yellow", justify="right")

        for enum_def in schema.enums:
            kind = "union" if enum_def.is_union else f"enum ({enum_def.underlying})"
            enum_table.add_row(enum_def.qualified_name, kind, str(len(enum_def.values)))

        console.print(enum_table)
        console.print()

    console.print("[bold cyan]Structs[/bold cyan]")
    struct_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    struct_table.add_column("Name", style="white")
    struct_table.add_column("Kind", style="dim")
    struct_table.add_column("Fields", style="yellow", justify="right")
    struct_table.add_column("Size", style="green", justify="right")
    struct_table.add_column("Align", style="green", justify="right")

    for struct_def in schema.structs:
        if struct_def.fixed:
            size = f"{struct_def.bytesize} bytes"
            align = str(struct_def.minalign)
        else:
            size = align = ""
        struct_table.add_row(
            struct_def.qualified_name,
            "struct" if struct_def.fixed else "table",
            str(len(struct_def.fields)),
            size,
            align,
        )

    console.print(struct_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
