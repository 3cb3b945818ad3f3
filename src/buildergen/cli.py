from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from buildergen.config import (
    GenerationConfig,
    generate_defaults,
    generation_config,
    merge_payload,
    synthesis_defaults,
)
from buildergen.pipeline import GenerationResult, generate
from buildergen.schema import SynthesisRequest, SynthesisResponse, blueprint_dto
from buildergen.synthesis import SynthesisConfig, Synthesizer

app = typer.Typer(add_completion=False, help="Generate builder classes for @buildable types.")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _resolve_config(
    *,
    root: Path,
    config: Optional[Path],
    suffix: Optional[str],
    factory_method: Optional[str],
    require_complete: Optional[bool],
    out: Optional[Path],
) -> GenerationConfig:
    synthesis = merge_payload(
        {
            "builder_suffix": suffix,
            "factory_method": factory_method,
            "require_complete": require_complete,
        },
        synthesis_defaults(root=root, config_path=config),
    )
    generate_section = merge_payload(
        {"output_root": str(out) if out is not None else None},
        generate_defaults(root=root, config_path=config),
    )
    return generation_config(synthesis, generate_section, root=root)


def _emit_diagnostics(result_warnings: List[str], result_errors: List[str]) -> None:
    for warning in result_warnings:
        typer.echo(f"warning: {warning}", err=True)
    for error in result_errors:
        typer.echo(f"error: {error}", err=True)


def _run(
    paths: List[Path],
    *,
    root: Path,
    config: Optional[Path],
    suffix: Optional[str],
    factory_method: Optional[str],
    require_complete: Optional[bool],
    out: Optional[Path],
    write: bool,
) -> GenerationResult:
    resolved = _resolve_config(
        root=root,
        config=config,
        suffix=suffix,
        factory_method=factory_method,
        require_complete=require_complete,
        out=out,
    )
    return generate(paths or [root], project_root=root, config=resolved, write=write)


@app.command("generate")
def generate_command(
    paths: List[Path] = typer.Argument(None),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    out: Optional[Path] = typer.Option(None, "--out"),
    suffix: Optional[str] = typer.Option(None, "--suffix"),
    factory_method: Optional[str] = typer.Option(None, "--factory-method"),
    require_complete: Optional[bool] = typer.Option(
        None, "--require-complete/--no-require-complete"
    ),
    dry_run: bool = typer.Option(False, "--dry-run"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Discover buildable classes and write their builder modules."""
    _configure_logging(verbose)
    result = _run(
        paths,
        root=root,
        config=config,
        suffix=suffix,
        factory_method=factory_method,
        require_complete=require_complete,
        out=out,
        write=not dry_run,
    )
    for module in result.modules:
        if dry_run:
            typer.echo(f"# {module.path}")
            typer.echo(module.source)
        else:
            typer.echo(f"{module.path}: {', '.join(module.builders)}")
    _emit_diagnostics(result.warnings, result.errors)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("plan")
def plan_command(
    paths: List[Path] = typer.Argument(None),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    suffix: Optional[str] = typer.Option(None, "--suffix"),
    factory_method: Optional[str] = typer.Option(None, "--factory-method"),
    require_complete: Optional[bool] = typer.Option(
        None, "--require-complete/--no-require-complete"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Print the builder blueprints for discovered classes as JSON."""
    _configure_logging(verbose)
    result = _run(
        paths,
        root=root,
        config=config,
        suffix=suffix,
        factory_method=factory_method,
        require_complete=require_complete,
        out=None,
        write=False,
    )
    response = SynthesisResponse(
        blueprints=[blueprint_dto(blueprint) for blueprint in result.blueprints],
        warnings=result.warnings,
        errors=result.errors,
    )
    typer.echo(response.model_dump_json(indent=2))
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("synthesize")
def synthesize_command(
    request_path: Path = typer.Argument(..., exists=True, dir_okay=False),
) -> None:
    """Synthesize blueprints from descriptors given as a JSON request."""
    try:
        request = SynthesisRequest.model_validate_json(
            request_path.read_text(encoding="utf-8")
        )
    except ValidationError as exc:
        typer.echo(f"error: invalid synthesis request: {exc}", err=True)
        raise typer.Exit(code=2)
    synthesizer = Synthesizer(
        config=SynthesisConfig(
            unchecked_roots=tuple(request.unchecked_roots),
            require_complete=request.require_complete,
        )
    )
    plan = synthesizer.plan(target.descriptors() for target in request.targets)
    response = SynthesisResponse(
        blueprints=[blueprint_dto(blueprint) for blueprint in plan.blueprints],
        warnings=plan.warnings,
        errors=plan.errors,
    )
    typer.echo(response.model_dump_json(indent=2))
    if plan.errors:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
