"""
jackc - Jack Compiler Command-Line Interface
============================================

This module implements the command-line interface for the Jack compiler.

Usage Examples
--------------
Compile one class:
    $ jackc Main.jack                # writes Main.vm

Compile a whole program:
    $ jackc Pong/                    # writes Pong/*.vm

Choose the output location:
    $ jackc Main.jack -o build/Main.vm
    $ jackc Pong/ -o build/

Also write the XML token listing:
    $ jackc --tokens Main.jack       # writes Main.vm and MainT.xml

Also write the XML parse-tree listing:
    $ jackc --xml Main.jack          # writes Main.vm and Main.xml

Each class is compiled independently: a failing class is reported and the
remaining ones are still compiled. The exit status is 1 if any failed.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from jack_sdk import __version__
from jack_sdk.compiler import JackCompiler, CompilerOptions, find_sources
from jack_sdk.compiler.compiler import VM_SUFFIX
from jack_sdk.errors import JackError
from jack_sdk.cli.errors import ExitCode, handle_cli_exception, report_error

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def output_path_for(source: Path, output: Optional[Path], as_directory: bool) -> Path:
    """
    Where the VM code for `source` goes.

    Without -o the .vm file sits beside the source. With -o, the option names
    a directory when compiling a directory (or when it is an existing
    directory), otherwise the output file itself.
    """
    vm_name = source.with_suffix(VM_SUFFIX).name
    if output is None:
        return source.with_suffix(VM_SUFFIX)
    if as_directory or output.is_dir():
        return output / vm_name
    return output


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "source",
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(path_type=Path),
    help="Output .vm file, or output directory when compiling a directory",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Also write the XML token listing (NameT.xml)",
)
@click.option(
    "--xml", "parse_tree",
    is_flag=True,
    help="Also write the XML parse-tree listing (Name.xml)",
)
@click.option(
    "--strict-classes",
    is_flag=True,
    help="Only accept known classes (OS classes and the compiled program) "
         "as call qualifiers",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="jackc")
def main(
    source: Path,
    output: Optional[Path],
    tokens: bool,
    parse_tree: bool,
    strict_classes: bool,
    verbose: bool,
) -> None:
    """
    Compile Jack classes to VM code.

    SOURCE is a .jack file or a directory of .jack files.

    \b
    Examples:
        jackc Main.jack              # Outputs Main.vm
        jackc Pong/                  # Outputs one .vm per class
        jackc Pong/ -o build/        # Outputs into build/
        jackc --tokens Main.jack     # Also outputs MainT.xml
        jackc --xml Main.jack        # Also outputs Main.xml
    """
    setup_logging(verbose)

    try:
        sources = find_sources(source)
    except Exception as e:
        handle_cli_exception(e, verbose)

    if not sources:
        click.echo(f"Error: no .jack files in {source}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    as_directory = source.is_dir()
    options = CompilerOptions(
        # Classes of the same program may qualify calls to each other
        known_classes=[p.stem for p in sources] if as_directory else [],
        strict_class_names=strict_classes,
        emit_tokens=tokens,
        emit_parse_tree=parse_tree,
    )
    compiler = JackCompiler(options)

    failures = 0
    for path in sources:
        logger.debug(f"Compiling {path}")
        try:
            result = compiler.compile_file(path)
        except JackError as e:
            report_error(e)
            failures += 1
            continue
        except Exception as e:
            handle_cli_exception(e, verbose)

        target = output_path_for(path, output, as_directory)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.vm_code + "\n" if result.vm_code else "", encoding="utf-8")
            if tokens:
                xml_path = target.with_name(f"{path.stem}T.xml")
                xml_path.write_text(result.tokens_xml + "\n", encoding="utf-8")
            if parse_tree:
                tree_path = target.with_name(f"{path.stem}.xml")
                tree_path.write_text(result.parse_tree_xml + "\n", encoding="utf-8")
        except OSError as e:
            handle_cli_exception(e, verbose)

        click.echo(f"Compiled {path} -> {target}")

    if failures:
        click.echo(f"{failures} of {len(sources)} file(s) failed to compile", err=True)
        sys.exit(ExitCode.BUILD_ERROR)


if __name__ == "__main__":
    main()
