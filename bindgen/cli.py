"""
bindgen.cli
===========

`bindgen`: generate typed contract bindings from compiled ABI artifacts.

Commands
--------
    $ bindgen generate --config bindgen.yaml
    $ bindgen generate --config bindgen.yaml --check        # CI: fail on stale output
    $ bindgen inspect --config bindgen.yaml --bundle abi/kernel-v2-abis.ts
    $ bindgen version

Configuration
-------------
- Config file : `--config` or env `BINDGEN_CONFIG`
- Artifacts   : `--artifacts` or env `BINDGEN_ARTIFACTS` (default: out/)
- Output root : `--out-dir` or env `BINDGEN_OUT_DIR` (default: .)
- Workers     : `--workers` or env `BINDGEN_WORKERS` (default: 1)

Exit codes: 0 success, 1 fatal generation error or stale output.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .artifacts import read_artifacts, stale_outputs, write_outputs
from .common.model import Diagnostic, ResolvedBundle
from .config import BindgenConfig, load_config
from .errors import BindgenError
from .pipeline import Pipeline, RunResult, generate_bindings
from .utils import canonical_json_str
from .version import __version__

__all__ = ["app", "main"]

log = logging.getLogger(__name__)

app = typer.Typer(
    name="bindgen",
    help="Generate typed contract bindings from compiled ABI artifacts.",
    no_args_is_help=True,
    add_completion=False,
)


class OutputFormat(str, Enum):
    text = "text"
    json = "json"


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True)


def _fail(console: Console, err: BindgenError) -> None:
    console.print(f"[red]error[/red] ({err.code}): {escape(str(err))}")
    raise typer.Exit(code=1)


def _load(
    config: Optional[Path],
    artifacts: Optional[Path] = None,
    out_dir: Optional[Path] = None,
    workers: Optional[int] = None,
    fail_fast: Optional[bool] = None,
) -> BindgenConfig:
    overrides: Dict[str, Any] = {
        "artifacts_dir": artifacts,
        "out_dir": out_dir,
        "workers": workers,
        "fail_fast": fail_fast,
    }
    return load_config(config, overrides=overrides)


def _diagnostics_table(diagnostics: Sequence[Diagnostic]) -> Table:
    t = Table(title="Diagnostics", box=box.SIMPLE)
    t.add_column("Severity")
    t.add_column("Code")
    t.add_column("Bundle")
    t.add_column("Message")
    for d in diagnostics:
        style = "yellow" if d.severity == "warning" else "dim"
        t.add_row(d.severity, d.code, escape(d.bundle or "-"), escape(d.message), style=style)
    return t


def _report(console: Console, result: RunResult, verbose: bool) -> None:
    shown = list(result.diagnostics) if verbose else result.warnings()
    if shown:
        console.print(_diagnostics_table(shown))
    for f in result.failures:
        console.print(f"[red]bundle {escape(f.bundle)} failed[/red] ({f.error.code}): {escape(str(f.error))}")
    s = result.stats
    console.print(
        f"{len(result.bundles)} bundle(s), {s.canonical_types} canonical type(s) "
        f"from {s.occurrences} occurrence(s)"
    )


@app.callback()
def _root(
    ctx: typer.Context,
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="More logging (-vv for debug)."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors."),
) -> None:
    """Configure logging for the process."""
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"verbose": verbose > 0}


@app.command("generate")
def generate_cmd(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON config file."),
    artifacts: Optional[Path] = typer.Option(None, "--artifacts", help="Compiled artifacts root."),
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", help="Root for bundle outputs."),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", min=1, help="Bundle workers."),
    fail_fast: Optional[bool] = typer.Option(
        None, "--fail-fast/--no-fail-fast", help="Abort on the first fatal error."
    ),
    check: bool = typer.Option(False, "--check", help="Do not write; exit 1 if any output is stale."),
) -> None:
    """Generate (or check) every configured bundle."""
    console = _console()
    verbose = bool((ctx.obj or {}).get("verbose"))
    try:
        cfg = _load(config, artifacts, out_dir, workers, fail_fast)
        log.debug("cli: effective config %s", cfg.as_dict())
        if not cfg.bundles:
            console.print("[yellow]no bundles configured[/yellow]")
            raise typer.Exit(code=1)
        raw = read_artifacts(cfg.artifacts_dir, cfg.contract_names())
        outputs, result = generate_bindings(cfg, raw)
    except BindgenError as e:
        _fail(console, e)
        return

    _report(console, result, verbose)

    if check:
        stale = stale_outputs(outputs)
        for p in stale:
            console.print(f"[red]stale[/red] {escape(str(p))}")
        if stale or result.failures:
            raise typer.Exit(code=1)
        console.print("[green]all outputs up to date[/green]")
        return

    written = write_outputs(outputs)
    for p in written:
        console.print(f"wrote {escape(str(p))}")
    if result.failures:
        raise typer.Exit(code=1)


@app.command("inspect")
def inspect_cmd(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON config file."),
    bundle: str = typer.Option(..., "--bundle", "-b", help="Bundle (output) name."),
    artifacts: Optional[Path] = typer.Option(None, "--artifacts", help="Compiled artifacts root."),
    fmt: OutputFormat = typer.Option(OutputFormat.text, "--format", "-f", help="text or json."),
) -> None:
    """Print the resolved model of one bundle."""
    console = _console()
    try:
        cfg = _load(config, artifacts)
        spec = cfg.bundle(bundle)
        raw = read_artifacts(cfg.artifacts_dir, spec.contracts)
        result = Pipeline(cfg).run(raw, [spec])
    except BindgenError as e:
        _fail(console, e)
        return
    if result.failures:
        _fail(console, result.failures[0].error)
    resolved = result.bundle(spec.name)

    if fmt == OutputFormat.json:
        typer.echo(canonical_json_str(resolved.to_dict(), indent=2))
        return
    for table in _bundle_tables(resolved):
        console.print(table)


def _bundle_tables(b: ResolvedBundle) -> List[Table]:
    types = Table(title=escape(f"{b.name}: types"), box=box.SIMPLE)
    types.add_column("Name")
    types.add_column("Id")
    types.add_column("Signature")
    for t in b.types:
        types.add_row(b.type_name(t), t.type_id, escape(t.signature))

    entries = Table(title=escape(f"{b.name}: entries"), box=box.SIMPLE)
    entries.add_column("Kind")
    entries.add_column("Binding")
    entries.add_column("Signature")
    entries.add_column("Declared by")
    entries.add_column("Resolution")
    for r in b.entries:
        binding = r.binding_name if r.overload_index is None else f"{r.binding_name}#{r.overload_index}"
        entries.add_row(
            r.kind,
            binding,
            escape(r.signature),
            ", ".join(r.declared_by),
            r.resolution.value if r.resolution else "",
        )
    return [types, entries]


@app.command("version")
def version_cmd() -> None:
    """Print the bindgen version."""
    typer.echo(__version__)


def main() -> None:  # pragma: no cover - thin wrapper
    app()
