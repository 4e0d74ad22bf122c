"""CLI commands for inspecting and exercising the gather and verify phases."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, List, Optional

import typer

from .config import DEFAULT_CONFIG_NAME, GavConfig, load_config
from .context.types import ContextRequest
from .diagnostics import configure_logging
from .errors import ConfigError
from .hooks.types import HOOK_TYPE_DESCRIPTIONS, HookContext, HookType
from .phases.tool_calls import TOOL_OPERATIONS, ToolCall, ToolResult
from .session import AgentSession
from .verification.types import CheckKind, CheckResult, VerificationResult

APP_HELP = "Gather-act-verify control core: context gathering, hooks and verification."
DEFAULT_BUDGET = 8_000
DEFAULT_TOOL = "str_replace_editor"

app = typer.Typer(help=APP_HELP, no_args_is_help=True)


def _config_option() -> Any:
    return typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the configuration file.",
    )


def _load(config: str) -> tuple[GavConfig, Path]:
    """Load configuration, insisting on the file only when one was named explicitly."""
    config_path = Path(config)
    if config != DEFAULT_CONFIG_NAME and not config_path.exists():
        raise typer.BadParameter(f"Config file not found: {config_path}")
    try:
        loaded = load_config(config_path)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    configure_logging(loaded.debug)
    return loaded, config_path.resolve().parent


def _parse_event(value: str) -> HookType:
    for hook_type in HookType:
        if value.lower() in (hook_type.value.lower(), hook_type.name.lower()):
            return hook_type
    choices = ", ".join(hook_type.value for hook_type in HookType)
    raise typer.BadParameter(f"Unknown hook event '{value}'. Choose from: {choices}")


def _render_check(check: CheckResult) -> None:
    if check.skipped:
        status = "-"
    else:
        status = "✓" if check.passed else "✗"
    suffix = " [BLOCKED]" if check.failed_blocking and check.kind is CheckKind.HOOK else ""
    typer.echo(f"{status} {check.kind.value}:{check.name} ({check.duration_ms}ms){suffix}")
    if check.skipped and check.output:
        typer.echo(f"  Skipped: {check.output}")


def _render_verdict(verdict: VerificationResult) -> None:
    if not verdict.checks:
        typer.echo("No checks ran.")
    for check in verdict.checks:
        _render_check(check)
    if verdict.feedback:
        typer.echo("")
        typer.echo(verdict.feedback)


@app.command()
def hooks(config: str = _config_option()) -> None:
    """List configured hooks grouped by lifecycle event."""
    loaded, base = _load(config)
    session = AgentSession.from_config(loaded, base=base, checks=[])
    try:
        registry = session.registry
        if not len(registry):
            typer.echo("No hooks configured.")
            return
        for hook_type in HookType:
            entries = registry.hooks(hook_type)
            if not entries:
                continue
            typer.echo(f"{hook_type.value}: {HOOK_TYPE_DESCRIPTIONS[hook_type]}")
            for hook in entries:
                state = "enabled" if hook.enabled else "disabled"
                typer.echo(
                    f"- {hook.name} [{state}, {hook.failure_mode.value}, {hook.timeout_ms}ms] {hook.command}"
                )
    finally:
        session.close()


@app.command("run-hooks")
def run_hooks(
    event: str = typer.Argument(..., help="Lifecycle event, e.g. PreCommit."),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="File path exported as $FILE."),
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Message exported as $MESSAGE and $COMMIT_MSG.",
    ),
    config: str = _config_option(),
) -> None:
    """Run every enabled hook bound to EVENT; exits non-zero when a blocking hook fails."""
    hook_type = _parse_event(event)
    loaded, base = _load(config)
    context = HookContext(file_path=file, message=message, commit_message=message)

    async def _run() -> VerificationResult:
        async with AgentSession.from_config(loaded, base=base, checks=[]) as session:
            return await session.run_hooks(hook_type, context)

    verdict = asyncio.run(_run())
    _render_verdict(verdict)
    if not verdict.passed:
        raise typer.Exit(code=1)


@app.command()
def verify(
    path: str = typer.Argument(..., help="File to verify as if the agent had just edited it."),
    tool: str = typer.Option(DEFAULT_TOOL, "--tool", "-t", help="Tool name the edit is attributed to."),
    thorough: bool = typer.Option(False, "--thorough", help="Also run type and test checks."),
    config: str = _config_option(),
) -> None:
    """Run hooks and static checks for PATH the way the verify phase would."""
    loaded, base = _load(config)
    if thorough:
        verification = loaded.verification.model_copy(update={"mode": "thorough"})
        loaded = loaded.model_copy(update={"verification": verification})
    if tool not in TOOL_OPERATIONS:
        typer.echo(f"Tool '{tool}' is not mapped to an operation; verifying as unscoped.")

    async def _run():
        async with AgentSession.from_config(loaded, base=base) as session:
            outcome = await session.verify_phase.attempt(
                ToolCall(name=tool, arguments={"path": str(Path(path).resolve())}),
                ToolResult(success=True),
                loaded.debug,
            )
            return outcome

    outcome = asyncio.run(_run())
    if not outcome.ok:
        typer.echo(f"Verification could not run: {outcome.reason}")
        raise typer.Exit(code=2)
    verdict = outcome.value
    if verdict is None or verdict.passed:
        typer.echo("Verification passed.")
        return
    typer.echo("Verification failed.")
    typer.echo(verdict.feedback or "")
    raise typer.Exit(code=1)


@app.command()
def gather(
    query: str = typer.Argument(..., help="What the agent is trying to do."),
    budget: int = typer.Option(DEFAULT_BUDGET, "--budget", "-b", min=0, help="Token budget for the bundle."),
    priority: List[str] = typer.Option([], "--priority", "-p", help="File to rank first (repeatable)."),
    config: str = _config_option(),
) -> None:
    """Gather a context bundle for QUERY and print what was selected."""
    loaded, base = _load(config)
    request = ContextRequest.for_query(query, budget, priority_files=priority)

    async def _run():
        async with AgentSession.from_config(loaded, base=base, checks=[]) as session:
            return await session.gather(request)

    bundle = asyncio.run(_run())
    if bundle is None:
        typer.echo("Context gathering failed.")
        raise typer.Exit(code=1)

    metadata = bundle.metadata
    typer.echo(
        f"Intent: {request.intent.value} | strategy {metadata.strategy.value} | "
        f"tokens {metadata.tokens_used}/{request.budget} | {metadata.duration_ms}ms"
    )
    if not bundle.sources:
        typer.echo("No relevant sources found.")
    for source in bundle.sources:
        reasons = "; ".join(source.reasons)
        typer.echo(f"- {source.path} (score {source.score:g}, ~{source.estimated_cost} tokens) {reasons}")
    for warning in metadata.warnings:
        typer.echo(f"Warning: {warning}")


@app.command()
def status(config: str = _config_option()) -> None:
    """Validate configuration and report what a session would be built from."""
    loaded, base = _load(config)
    session = AgentSession.from_config(loaded, base=base)
    try:
        verification = loaded.verification
        typer.echo(f"Repository root: {session.repo_root}")
        typer.echo(f"Verification mode: {verification.mode}")
        enabled_checks = [
            name
            for name, enabled in (
                ("lint", verification.lint_enabled),
                ("types", verification.types_enabled),
                ("tests", verification.tests_enabled),
            )
            if enabled
        ]
        typer.echo(f"Static checks: {', '.join(enabled_checks) or 'none'}")
        typer.echo(f"Hooks: {len(session.registry)} from {len(session.registry.sources)} file(s)")
        for source in session.registry.sources:
            state = "found" if source.exists() else "missing"
            typer.echo(f"- {source} ({state})")
        stats = session.get_cache_stats()
        typer.echo(
            f"Context cache: {loaded.context.cache_max_entries} entries, "
            f"{loaded.context.cache_ttl_seconds:g}s TTL (currently {stats.size})"
        )
        typer.echo(f"Debug diagnostics: {'on' if loaded.debug else 'off'}")
    finally:
        session.close()


if __name__ == "__main__":
    app()
