"""Command-line entry point for native-release."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from .checkout import GitCheckout, NoCheckout, SourceCheckout
from .errors import ConfigurationError
from .matrix import DEFAULT_TEST_HOSTS, resolve_matrix
from .pipelines import PipelineSteps, run_release, run_tests
from .provision import DEFAULT_LLVM_INSTALL_COMMAND, LlvmProvisioner, RustupProvisioner
from .publish import build_adapter
from .settings import DEFAULT_BINDING_DIR, DEFAULT_TOKEN_ENV, ReleaseSettings, load_local_env
from .toolchain import select_toolchain
from .workflow import ci_workflow, dump_workflow, release_workflow


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    load_local_env(Path.cwd() / ".env")

    try:
        if args.command == "matrix":
            if args.matrix_command == "list":
                return _handle_matrix_list(args)
            if args.matrix_command == "validate":
                return _handle_matrix_validate(args)
        if args.command == "toolchain" and args.toolchain_command == "show":
            return _handle_toolchain_show(args)
        if args.command == "release" and args.release_command == "run":
            return _handle_release_run(args)
        if args.command == "test" and args.test_command == "run":
            return _handle_test_run(args)
        if args.command == "workflow" and args.workflow_command == "render":
            return _handle_workflow_render(args)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("Run cancelled.", file=sys.stderr)
        return 130

    parser.error(f"Unknown command '{args.command}'")
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="native-release", description="Build and publish native binding binaries.")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    matrix = subparsers.add_parser("matrix", help="Inspect the release matrix.")
    matrix_sub = matrix.add_subparsers(dest="matrix_command", required=True)
    matrix_list = matrix_sub.add_parser("list", help="Print matrix entries.")
    matrix_list.add_argument("--matrix", help="YAML matrix file (defaults to the built-in matrix).")
    matrix_validate = matrix_sub.add_parser("validate", help="Validate a matrix file.")
    matrix_validate.add_argument("--matrix", required=True)

    toolchain = subparsers.add_parser("toolchain", help="Toolchain selection helpers.")
    toolchain_sub = toolchain.add_subparsers(dest="toolchain_command", required=True)
    toolchain_show = toolchain_sub.add_parser("show", help="Show the toolchain selected per entry.")
    toolchain_show.add_argument("--matrix")
    toolchain_show.add_argument("--artifact", action="append")

    release = subparsers.add_parser("release", help="Release pipeline.")
    release_sub = release.add_subparsers(dest="release_command", required=True)
    release_run = release_sub.add_parser("run", help="Build and upload matrix entries for a tag.")
    _add_common_run_arguments(release_run)
    release_run.add_argument("--matrix")
    release_run.add_argument("--ref", help="Triggering ref (defaults to GITHUB_REF).")
    release_run.add_argument("--artifact", action="append", help="Only run these artifacts (repeatable).")
    release_run.add_argument("--host", help="Only run entries for this runner label.")
    release_run.add_argument("--adapter", default="github", choices=["github", "gh", "noop"])
    release_run.add_argument("--repository", help="owner/name (defaults to GITHUB_REPOSITORY).")
    release_run.add_argument("--token-env", default=DEFAULT_TOKEN_ENV)
    release_run.add_argument("--dry-run", action=argparse.BooleanOptionalAction, default=False)

    test = subparsers.add_parser("test", help="Test pipeline.")
    test_sub = test.add_subparsers(dest="test_command", required=True)
    test_run = test_sub.add_parser("run", help="Run the verification command per host.")
    _add_common_run_arguments(test_run)
    test_run.add_argument("--host", action="append", help="Host labels (defaults to the fixed test hosts).")

    workflow = subparsers.add_parser("workflow", help="GitHub Actions workflow rendering.")
    workflow_sub = workflow.add_subparsers(dest="workflow_command", required=True)
    workflow_render = workflow_sub.add_parser("render", help="Render a workflow YAML file.")
    workflow_render.add_argument("--kind", choices=["release", "ci"], default="release")
    workflow_render.add_argument("--matrix")
    workflow_render.add_argument("--output")

    return parser


def _add_common_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workspace-root", help="Repository root (defaults to GITHUB_WORKSPACE, then the current directory).")
    parser.add_argument("--binding-dir", default=DEFAULT_BINDING_DIR)
    parser.add_argument("--compiler-dir", help="LLVM install directory (defaults to RUNNER_TEMP/llvm).")
    parser.add_argument("--llvm-install-command", default=DEFAULT_LLVM_INSTALL_COMMAND)
    parser.add_argument("--skip-checkout", action="store_true")
    # Local contexts share one working tree, so they run one at a time unless asked otherwise.
    parser.add_argument("--jobs", type=int, default=1)


def _handle_matrix_list(args: argparse.Namespace) -> int:
    matrix = resolve_matrix(args.matrix)
    print(json.dumps(matrix.to_workflow_include(), indent=2))
    return 0


def _handle_matrix_validate(args: argparse.Namespace) -> int:
    matrix = resolve_matrix(args.matrix)
    for entry in matrix.entries:
        select_toolchain(entry)
    payload = {"status": "ok", "entries": len(matrix.entries), "artifacts": matrix.artifact_names}
    print(json.dumps(payload, indent=2))
    return 0


def _handle_toolchain_show(args: argparse.Namespace) -> int:
    matrix = resolve_matrix(args.matrix).select(artifacts=args.artifact)
    payload = [
        {
            "artifact_name": entry.artifact_name,
            "host_os": entry.host_os,
            "toolchain": select_toolchain(entry).model_dump(mode="json"),
        }
        for entry in matrix.entries
    ]
    print(json.dumps(payload, indent=2))
    return 0


def _handle_release_run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args, repository=args.repository, token_env=args.token_env)
    matrix = resolve_matrix(args.matrix).select(artifacts=args.artifact, host_os=args.host)
    if not matrix.entries:
        raise ConfigurationError("No matrix entries selected.")

    adapter_name = "noop" if args.dry_run else args.adapter
    target = settings.release_target(ref=args.ref, require_token=adapter_name != "noop")
    steps = _build_steps(args)
    steps.publisher = build_adapter(adapter_name, repository=settings.repository, github_api=settings.github_api)

    result = run_release(matrix, target, steps, settings, cancel=threading.Event())
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def _handle_test_run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    hosts: List[str] = list(args.host or DEFAULT_TEST_HOSTS)
    result = run_tests(_build_steps(args), settings, hosts=hosts, cancel=threading.Event())
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def _handle_workflow_render(args: argparse.Namespace) -> int:
    if args.kind == "release":
        workflow = release_workflow(resolve_matrix(args.matrix))
    else:
        workflow = ci_workflow()
    output = Path(args.output) if args.output else None
    text = dump_workflow(workflow, output)
    if output is None:
        print(text, end="")
    return 0


def _settings_from_args(args: argparse.Namespace, **extra: object) -> ReleaseSettings:
    return ReleaseSettings.from_env(
        workspace_root=Path(args.workspace_root).resolve() if args.workspace_root else None,
        binding_dir=args.binding_dir,
        compiler_dir=Path(args.compiler_dir) if args.compiler_dir else None,
        max_workers=args.jobs,
        **extra,
    )


def _build_steps(args: argparse.Namespace) -> PipelineSteps:
    checkout: SourceCheckout = NoCheckout() if args.skip_checkout else GitCheckout()
    return PipelineSteps(
        language=RustupProvisioner(),
        compiler=LlvmProvisioner(command=args.llvm_install_command or None),
        checkout=checkout,
    )


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
