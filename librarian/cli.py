"""CLI entrypoints for librarian commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .errors import LibrarianError
from .logging import configure_logging
from .models import Artifact
from .orchestrator import BatchReport, Librarian


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


def _add_target_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", nargs="?", help="Artifact directory, relative to the repository root.")
    parser.add_argument(
        "--all",
        dest="all_artifacts",
        action="store_true",
        help="Apply to every artifact in the repository.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="librarian",
        description="Manage generated client libraries and their releases.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-C",
        "--root",
        default=".",
        help="Repository root (defaults to current directory).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create .librarian/config.yaml.")
    _add_verbose_option(init_parser, suppress_default=True)
    init_parser.add_argument(
        "language",
        nargs="?",
        default=None,
        help="Target language (go, python, rust, dart); omit or use none for release-only.",
    )

    config_parser = subparsers.add_parser("config", help="Read or change repository config.")
    _add_verbose_option(config_parser, suppress_default=True)
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)

    get_parser = config_sub.add_parser("get", help="Print a config value.")
    _add_verbose_option(get_parser, suppress_default=True)
    get_parser.add_argument("key")

    set_parser = config_sub.add_parser("set", help="Set a config value.")
    _add_verbose_option(set_parser, suppress_default=True)
    set_parser.add_argument("key")
    set_parser.add_argument("value")

    update_parser = config_sub.add_parser(
        "update", help="Refresh the toolchain version and source refs."
    )
    _add_verbose_option(update_parser, suppress_default=True)
    update_parser.add_argument("key", nargs="?", default=None)
    update_parser.add_argument("--all", dest="all_keys", action="store_true")

    add_parser = subparsers.add_parser("add", help="Start tracking an artifact.")
    _add_verbose_option(add_parser, suppress_default=True)
    add_parser.add_argument("path")
    add_parser.add_argument("apis", nargs="*", help="API paths, e.g. google/cloud/secretmanager/v1.")

    edit_parser = subparsers.add_parser("edit", help="Edit artifact file patterns and metadata.")
    _add_verbose_option(edit_parser, suppress_default=True)
    edit_parser.add_argument("path")
    for flag, help_text in (
        ("--keep", "File pattern preserved during regeneration."),
        ("--remove", "File pattern deleted after generation."),
        ("--exclude", "File pattern excluded from release."),
    ):
        edit_parser.add_argument(flag, action="append", default=[], help=help_text)
    edit_parser.add_argument(
        "--language",
        action="append",
        default=[],
        metavar="LANG:KEY=VALUE",
        help="Language metadata, e.g. go:module=cloud.google.com/go/foo.",
    )

    remove_parser = subparsers.add_parser("remove", help="Stop tracking an artifact.")
    _add_verbose_option(remove_parser, suppress_default=True)
    remove_parser.add_argument("path")

    generate_parser = subparsers.add_parser(
        "generate", help="Sync generation settings into artifact state."
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_target_options(generate_parser)

    prepare_parser = subparsers.add_parser("prepare", help="Compute and record the next release.")
    _add_verbose_option(prepare_parser, suppress_default=True)
    _add_target_options(prepare_parser)
    prepare_parser.add_argument(
        "--prerelease",
        default=None,
        help="Prerelease label (e.g. alpha, beta, rc); empty for a stable release.",
    )
    prepare_parser.add_argument(
        "--promote",
        action="store_true",
        help="Drop the prerelease suffix of the current version.",
    )

    release_parser = subparsers.add_parser("release", help="Tag prepared releases.")
    _add_verbose_option(release_parser, suppress_default=True)
    _add_target_options(release_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for librarian commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(getattr(args, "verbose", False)))

    if args.command in ("generate", "prepare", "release"):
        if bool(args.path) == bool(args.all_artifacts):
            parser.exit(2, f"librarian {args.command}: pass exactly one of <path> or --all\n")

    librarian = Librarian(Path(args.root))
    try:
        _dispatch(librarian, args)
    except LibrarianError as exc:
        parser.exit(1, f"librarian {args.command} failed: {exc}\n")
    except Exception as exc:  # pragma: no cover - defensive guard
        parser.exit(
            1,
            f"librarian {args.command} failed: {exc}\nRun with --verbose for more details.\n",
        )


def _dispatch(librarian: Librarian, args: argparse.Namespace) -> None:
    command = args.command
    if command == "init":
        path = librarian.run_init(args.language)
        print(f"Initialized librarian at {_relativize(path)}")
    elif command == "config":
        _dispatch_config(librarian, args)
    elif command == "add":
        key, _ = librarian.run_add(args.path, args.apis)
        print(f"Tracking {key}")
    elif command == "edit":
        outcome = librarian.run_edit(
            args.path,
            keep=args.keep,
            remove=args.remove,
            exclude=args.exclude,
            language=args.language,
        )
        if not outcome.updated:
            _print_artifact_settings(outcome.path, outcome.artifact)
        else:
            print(f"Updated {outcome.path}")
    elif command == "remove":
        if librarian.run_remove(args.path):
            print(f"Stopped tracking {args.path}")
        else:
            print(f"{args.path} was not tracked")
    elif command == "generate":
        _report(command, librarian.run_generate(args.path, all_artifacts=args.all_artifacts))
    elif command == "prepare":
        report = librarian.run_prepare(
            args.path,
            all_artifacts=args.all_artifacts,
            prerelease=args.prerelease,
            promote=bool(args.promote),
        )
        _report(command, report)
    elif command == "release":
        _report(command, librarian.run_release(args.path, all_artifacts=args.all_artifacts))
    else:  # pragma: no cover - argparse enforces choices
        raise SystemExit(f"Unknown command {command}")


def _dispatch_config(librarian: Librarian, args: argparse.Namespace) -> None:
    if args.config_command == "get":
        print(librarian.config_get(args.key))
    elif args.config_command == "set":
        librarian.config_set(args.key, args.value)
        print(f"{args.key} = {args.value}")
    elif args.config_command == "update":
        changes = librarian.config_update(args.key, all_keys=bool(args.all_keys))
        if not changes:
            print("Config already up to date")
        for change in changes:
            print(f"{change.key}: {change.old or '(unset)'} -> {change.new}")


def _print_artifact_settings(path: str, artifact: Artifact) -> None:
    print(f"{path}:")
    file_config = artifact.config
    for label in ("keep", "remove", "exclude"):
        values = sorted(getattr(file_config, label)) if file_config is not None else []
        print(f"  {label}: {', '.join(values) if values else '(none)'}")
    for language, block in sorted(artifact.language.items()):
        for name, value in block.items():
            print(f"  {language}:{name} = {value}")


def _report(command: str, report: BatchReport) -> None:
    for key in report.succeeded:
        print(f"{command}: {key}")
    for key, reason in sorted(report.skipped.items()):
        print(f"skipped {key}: {reason}")
    for key, reason in sorted(report.failed.items()):
        print(f"failed {key}: {reason}", file=sys.stderr)
    if len(report.succeeded) + len(report.skipped) + len(report.failed) > 1:
        print(report.summary())
    if not report.ok:
        raise SystemExit(1)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
