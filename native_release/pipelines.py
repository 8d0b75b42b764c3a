"""Release and test pipelines: one independent execution context per entry.

Each context runs its steps strictly in order (provision, checkout, build,
upload) and reports its own :class:`ContextResult`. Failures are recorded at
the context boundary and never cancel sibling contexts.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from .build import VERIFY_COMMAND, resolve_invocation, run_build, run_verification
from .checkout import NoCheckout, SourceCheckout
from .errors import BuildError, ReleaseError
from .matrix import DEFAULT_TEST_HOSTS
from .models import CANCELLED, FAILED, ContextResult, ReleaseRunResult, TestRunResult
from .provision import CompilerProvisioner, LanguageProvisioner, LlvmProvisioner, RustupProvisioner
from .publish import NoOpAdapter, StorageAdapter, publish_artifact
from .schemas.build import ToolchainRequirement
from .schemas.matrix import MatrixEntry, ReleaseMatrix
from .schemas.release import ReleaseTarget
from .settings import ReleaseSettings
from .toolchain import select_test_toolchain, select_toolchain

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_SETUP = "setup"
STAGE_PROVISION = "provision"
STAGE_CHECKOUT = "checkout"
STAGE_BUILD = "build"
STAGE_PUBLISH = "publish"
STAGE_TEST = "test"


@dataclass
class PipelineSteps:
    """External collaborators invoked by every context."""

    publisher: StorageAdapter = field(default_factory=NoOpAdapter)
    language: LanguageProvisioner = field(default_factory=RustupProvisioner)
    compiler: CompilerProvisioner = field(default_factory=LlvmProvisioner)
    checkout: SourceCheckout = field(default_factory=NoCheckout)


class _ContextCancelled(Exception):
    pass


class _ContextRun:
    """Tracks the current stage of one context and its cancellation signal."""

    def __init__(self, result: ContextResult, cancel: Optional[threading.Event]) -> None:
        self.result = result
        self.cancel = cancel
        self.stage = STAGE_SETUP

    def enter(self, stage: str) -> None:
        self.stage = stage
        if self.cancel is not None and self.cancel.is_set():
            raise _ContextCancelled()

    def cancelled(self) -> ContextResult:
        self.result.status = CANCELLED
        self.result.failed_stage = self.stage
        self.result.logs.append(f"Run cancelled before {self.stage}; no rollback performed.")
        logger.warning("[%s] cancelled before %s", self.result.key, self.stage)
        return self.result

    def failed(self, exc: ReleaseError) -> ContextResult:
        self.result.status = FAILED
        self.result.failed_stage = self.stage
        self.result.error = str(exc)
        if isinstance(exc, BuildError) and exc.output:
            self.result.logs.append(exc.output)
        logger.error("[%s] %s failed: %s", self.result.key, self.stage, exc)
        return self.result


def run_release_context(
    entry: MatrixEntry,
    target: ReleaseTarget,
    steps: PipelineSteps,
    settings: ReleaseSettings,
    *,
    base_env: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
) -> ContextResult:
    """Provision, check out, build and upload a single matrix entry."""

    result = ContextResult(key=entry.artifact_name, host_os=entry.host_os)
    run = _ContextRun(result, cancel)
    try:
        run.enter(STAGE_SETUP)
        toolchain = select_toolchain(entry)
        result.toolchain = toolchain

        run.enter(STAGE_PROVISION)
        env = _provision(toolchain, steps, settings, result.logs, base_env)

        run.enter(STAGE_CHECKOUT)
        workspace = steps.checkout.acquire(settings.workspace_root, result.logs)

        run.enter(STAGE_BUILD)
        invocation = resolve_invocation(entry, workspace / settings.binding_dir)
        result.invocation = invocation
        outcome = run_build(invocation, env)
        result.logs.extend(outcome.logs)

        run.enter(STAGE_PUBLISH)
        result.upload = publish_artifact(
            steps.publisher,
            outcome.artifact_path,
            entry.artifact_name,
            target,
            result.logs,
        )
    except _ContextCancelled:
        return run.cancelled()
    except ReleaseError as exc:
        return run.failed(exc)

    logger.info("[%s] published to %s", entry.artifact_name, target.tag)
    return result


def run_release(
    matrix: ReleaseMatrix,
    target: ReleaseTarget,
    steps: PipelineSteps,
    settings: ReleaseSettings,
    *,
    base_env: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
) -> ReleaseRunResult:
    """Run one context per matrix entry; every context runs to completion."""

    logger.info("Releasing %d artifacts for %s", len(matrix.entries), target.tag)
    contexts = _fan_out(
        list(matrix.entries),
        lambda entry: run_release_context(entry, target, steps, settings, base_env=base_env, cancel=cancel),
        settings.max_workers,
        cancel,
    )
    return ReleaseRunResult(tag=target.tag, contexts=contexts)


def run_test_context(
    host_os: str,
    steps: PipelineSteps,
    settings: ReleaseSettings,
    *,
    command: Sequence[str] = VERIFY_COMMAND,
    base_env: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
) -> ContextResult:
    result = ContextResult(key=host_os, host_os=host_os)
    run = _ContextRun(result, cancel)
    try:
        run.enter(STAGE_SETUP)
        toolchain = select_test_toolchain(host_os)
        result.toolchain = toolchain

        run.enter(STAGE_PROVISION)
        env = _provision(toolchain, steps, settings, result.logs, base_env)

        run.enter(STAGE_CHECKOUT)
        workspace = steps.checkout.acquire(settings.workspace_root, result.logs)

        run.enter(STAGE_TEST)
        result.logs.extend(run_verification(workspace, env, command))
    except _ContextCancelled:
        return run.cancelled()
    except ReleaseError as exc:
        return run.failed(exc)
    return result


def run_tests(
    steps: PipelineSteps,
    settings: ReleaseSettings,
    *,
    hosts: Sequence[str] = DEFAULT_TEST_HOSTS,
    command: Sequence[str] = VERIFY_COMMAND,
    base_env: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
) -> TestRunResult:
    contexts = _fan_out(
        list(hosts),
        lambda host: run_test_context(host, steps, settings, command=command, base_env=base_env, cancel=cancel),
        settings.max_workers,
        cancel,
    )
    return TestRunResult(contexts=contexts)


def _provision(
    toolchain: ToolchainRequirement,
    steps: PipelineSteps,
    settings: ReleaseSettings,
    logs: List[str],
    base_env: Optional[Mapping[str, str]],
) -> Dict[str, str]:
    env = dict(os.environ if base_env is None else base_env)
    if toolchain.native_compiler is not None:
        env.update(
            steps.compiler.install(toolchain.native_compiler, settings.resolved_compiler_dir, logs, env)
        )
    env.update(steps.language.install(toolchain.language_toolchain, logs))
    return env


def _fan_out(
    items: List[T],
    run: Callable[[T], ContextResult],
    max_workers: Optional[int],
    cancel: Optional[threading.Event],
) -> List[ContextResult]:
    if not items:
        return []
    workers = max(1, min(max_workers or len(items), len(items)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="release-context") as executor:
        futures = [executor.submit(run, item) for item in items]
        try:
            return [future.result() for future in futures]
        except KeyboardInterrupt:
            # Pending and in-flight contexts stop at their next stage boundary.
            if cancel is not None:
                cancel.set()
            raise


__all__ = [
    "PipelineSteps",
    "STAGE_BUILD",
    "STAGE_CHECKOUT",
    "STAGE_PROVISION",
    "STAGE_PUBLISH",
    "STAGE_SETUP",
    "STAGE_TEST",
    "run_release",
    "run_release_context",
    "run_test_context",
    "run_tests",
]
