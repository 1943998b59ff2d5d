"""CLI entrypoints for versync commands."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .config import VersyncConfig, load_config
from .context import InvocationContext, Stage
from .errors import FatalError
from .git.repository import Repository, discover_root
from .hooks import HOOK_STAGES, HookOrchestrator, install_hooks
from .logging import configure_logging, get_logger
from .manifests import ManifestSynchronizer
from .process import CommandRunner, Runner
from .validator import CIValidator

# Commands whose stdout is read by scripts; only warnings reach stderr.
_SCRIPTED_COMMANDS = {"version-info", "next-version"}


@dataclass
class Services:
    """Everything a command needs, wired once per process."""

    config: VersyncConfig
    context: InvocationContext
    repository: Repository
    synchronizer: ManifestSynchronizer
    runner: Runner


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="versync",
        description="Derive the project version from conventional commits and keep manifests in sync.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-C",
        "--repo",
        default=".",
        help="Path inside the repository (defaults to current directory).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug-level logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    hook_parser = subparsers.add_parser(
        "hook",
        help="Run one git hook stage.",
    )
    _add_verbose_option(hook_parser, suppress_default=True)
    hook_parser.add_argument(
        "stage",
        choices=[stage.value for stage in HOOK_STAGES],
        help="Hook stage being executed by git.",
    )
    hook_parser.add_argument(
        "hook_args",
        nargs="*",
        help="Arguments git passes to the hook (message file, source, sha).",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate commits and manifest versions against trunk (CI).",
    )
    _add_verbose_option(check_parser, suppress_default=True)

    info_parser = subparsers.add_parser(
        "version-info",
        help="Print one component of the committed version.",
    )
    _add_verbose_option(info_parser, suppress_default=True)
    info_parser.add_argument("part", choices=["major", "minor", "patch"])

    next_parser = subparsers.add_parser(
        "next-version",
        help="Print the version derived from the branch history without writing it.",
    )
    _add_verbose_option(next_parser, suppress_default=True)

    install_parser = subparsers.add_parser(
        "install-hooks",
        help="Install the versync git hooks into this repository.",
    )
    _add_verbose_option(install_parser, suppress_default=True)
    install_parser.add_argument(
        "--force",
        action="store_true",
        help="Replace existing hooks that were not installed by versync.",
    )

    return parser


def build_services(
    repo: str,
    stage: Stage,
    environ: Mapping[str, str],
    runner: Runner | None = None,
) -> Services:
    runner = runner or CommandRunner(environ)
    root = discover_root(Path(repo).expanduser().resolve(), runner)
    config = load_config(root)
    context = InvocationContext.from_environ(stage, environ, config)
    repository = Repository(root, runner)
    synchronizer = ManifestSynchronizer(repository, config.manifests, runner)
    return Services(
        config=config,
        context=context,
        repository=repository,
        synchronizer=synchronizer,
        runner=runner,
    )


def main(
    argv: list[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    runner: Runner | None = None,
) -> None:
    """CLI entrypoint for versync commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    label = f"hook {args.stage}" if args.command == "hook" else args.command
    configure_logging(
        verbose=bool(args.verbose),
        quiet=args.command in _SCRIPTED_COMMANDS,
        label=label,
        log_file=args.log_file,
    )
    environ = dict(os.environ if environ is None else environ)
    stage = Stage(args.stage) if args.command == "hook" else Stage.CHECK

    try:
        services = build_services(args.repo, stage, environ, runner)
        _dispatch(args, services)
    except (FatalError, OSError) as exc:
        parser.exit(1, f"versync {label} failed: {exc}\n")


def _dispatch(args: argparse.Namespace, services: Services) -> None:
    if args.command == "hook":
        orchestrator = HookOrchestrator(
            services.config,
            services.context,
            services.repository,
            services.synchronizer,
            services.runner,
        )
        orchestrator.run(services.context.stage, args.hook_args)
    elif args.command == "check":
        CIValidator(
            services.config,
            services.context,
            services.repository,
            services.synchronizer,
            services.runner,
        ).run()
    elif args.command == "version-info":
        revision = services.context.commit_ref or services.repository.head()
        version = services.synchronizer.read_version(services.synchronizer.manifests[0], revision)
        print(version.component(args.part))
    elif args.command == "next-version":
        orchestrator = HookOrchestrator(
            services.config,
            services.context,
            services.repository,
            services.synchronizer,
            services.runner,
        )
        print(orchestrator.compute_next_version())
    elif args.command == "install-hooks":
        installed = install_hooks(services.repository.git_dir() / "hooks", force=bool(args.force))
        logger = get_logger("cli")
        for path in installed:
            logger.info("Installed %s", path)
    else:  # pragma: no cover - argparse enforces choices
        raise FatalError(f"unknown command {args.command}")


if __name__ == "__main__":
    main(sys.argv[1:])
