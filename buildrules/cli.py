# buildrules/cli.py
"""
Command-line front end for buildrules.

    buildrules plan  <plugin root> --target Editor --engine 5.1
    buildrules check <descriptor file> --target Editor --engine 5.1

Exit codes: 0 success, 1 blocking resolution errors, 2 unreadable input or
invalid settings.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from buildrules.config.settings import (
    ResolutionMode,
    buildConfigStack,
    loadResolutionSettings,
)
from buildrules.core.errors import BuildRulesError, ConfigError, DescriptorError
from buildrules.core.jsonutils import safeJsonDumps
from buildrules.core.logging import configureLogging, getLogger, resetLogContext, setLogContext
from buildrules.descriptors.descriptor import TargetContext
from buildrules.descriptors.loader import buildDescriptorRegistry, loadDescriptorFile
from buildrules.resolution.plan import BuildPlan, planBuild
from buildrules.resolution.validator import validate
from buildrules.resolution.version_resolver import resolveDescriptor

app = typer.Typer(help="Validate and resolve module build descriptors into a build order.", no_args_is_help=True)
logger = getLogger(__name__)

EXIT_OK = 0
EXIT_RESOLUTION_ERRORS = 1
EXIT_INPUT_ERROR = 2


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _makeContext(target: str, engine: str) -> TargetContext:
    try:
        return TargetContext.create(target, engine)
    except (TypeError, ValueError) as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(EXIT_INPUT_ERROR)


def _overrides(
    mode: Optional[str],
    external: Optional[List[str]],
    visibilityConflict: Optional[str],
    workers: Optional[int],
) -> Dict[str, Any]:
    entries: Dict[str, Any] = {
        "resolution.maxWorkers": workers,
        "dependencies.visibilityConflict": visibilityConflict,
    }
    if mode is not None:
        try:
            entries["resolution.mode"] = ResolutionMode.parse(mode).value
        except ValueError as err:
            raise ConfigError(str(err)) from err
    if external:
        entries["resolution.externalModules"] = list(external)
        entries["resolution.externalModules__merge"] = "uniqueAppend"
    return entries


def _printPlan(plan: BuildPlan) -> None:
    if plan.ok:
        typer.echo(f"Build order for {plan.context}:")
        for index, name in enumerate(plan.buildOrder, start=1):
            typer.echo(f"  {index}. {name}")
        return

    typer.echo(f"{len(plan.errors)} blocking error(s) for {plan.context}:")
    for err in plan.errors:
        module = err.moduleName or "-"
        typer.echo(f"  [{err.kind}] {module}: {err}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("plan")
def plan(
    root: Path = typer.Argument(..., help="Plugin root to scan for *.module.json5 descriptors."),
    target: str = typer.Option(..., "--target", "-t", help="Target type: Editor, Game, Server, Program, Client."),
    engine: str = typer.Option(..., "--engine", "-e", help="Host engine version, e.g. 5.1."),
    mode: Optional[str] = typer.Option(None, "--mode", help="collect (default) or fail-fast."),
    external: Optional[List[str]] = typer.Option(
        None, "--external", "-x", help="Host engine module that may be referenced without a descriptor."
    ),
    visibilityConflict: Optional[str] = typer.Option(
        None, "--visibility-conflict", help="error (default) or preferPublic."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Threads for per-module resolution."),
    asJson: bool = typer.Option(False, "--json", help="Print the plan as JSON."),
) -> None:
    """
    Resolve every module below ROOT for one target and print the build order.
    """
    context = _makeContext(target, engine)

    try:
        stack = buildConfigStack(root, overrides=_overrides(mode, external, visibilityConflict, workers))
        view = stack.view()
        settings = loadResolutionSettings(view)
    except ConfigError as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(EXIT_INPUT_ERROR)

    configureLogging(
        devMode=bool(view.get("logging.devMode", True)),
        logFile=view.get("logging.file"),
        quiet=asJson,
    )
    token = setLogContext(target=str(context))
    try:
        logger.debug("Settings layers: %s", ", ".join(layer.name for layer in stack.layers()))
        try:
            registry = buildDescriptorRegistry(root, followSymlinks=settings.followSymlinks)
        except DescriptorError as err:
            logger.debug("Cannot load descriptors below '%s': %s", root, err)
            typer.echo(f"error: {err}", err=True)
            raise typer.Exit(EXIT_INPUT_ERROR)

        try:
            result = planBuild(registry, context, settings=settings)
        except BuildRulesError as err:
            logger.info("Fail-fast resolution stopped at %s for module '%s'", err.kind, err.moduleName)
            result = BuildPlan(context=context, errors=(err,))
    finally:
        resetLogContext(token)

    if asJson:
        typer.echo(safeJsonDumps(result.toDict(), indent=2))
    else:
        _printPlan(result)

    raise typer.Exit(EXIT_OK if result.ok else EXIT_RESOLUTION_ERRORS)


@app.command("check")
def check(
    descriptor: Path = typer.Argument(..., help="A single *.module.json5 / *.module.json descriptor."),
    target: str = typer.Option(..., "--target", "-t"),
    engine: str = typer.Option(..., "--engine", "-e"),
    asJson: bool = typer.Option(False, "--json"),
) -> None:
    """
    Validate and resolve one descriptor, printing its resolved dependency sets.
    """
    context = _makeContext(target, engine)
    configureLogging(devMode=False, quiet=True)

    try:
        desc = loadDescriptorFile(descriptor)
    except DescriptorError as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(EXIT_INPUT_ERROR)

    error = validate(desc, context)
    if error is not None:
        if asJson:
            typer.echo(safeJsonDumps({"ok": False, "errors": [error.toDict()]}, indent=2))
        else:
            typer.echo(f"[{error.kind}] {error}")
        raise typer.Exit(EXIT_RESOLUTION_ERRORS)

    resolved = resolveDescriptor(desc, context)
    if asJson:
        typer.echo(safeJsonDumps({"ok": True, "module": resolved.toDict()}, indent=2))
    else:
        typer.echo(f"{resolved.name} for {context}:")
        for label, names in (
            ("public", resolved.depsPublic),
            ("private", resolved.depsPrivate),
            ("dynamic", resolved.depsDynamic),
        ):
            typer.echo(f"  {label}: {', '.join(sorted(names)) or '-'}")
    raise typer.Exit(EXIT_OK)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
