#!/usr/bin/env python3
"""
Script to analyze and split git changes into conventional commits:
- analyze: classify the staged or unstaged diff (map-reduce for large diffs)
- truncate: print the diff cut down to the configured budget
- compose: split the working tree changes into ordered atomic commits
- batch: classify every commit of a range in parallel
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from diff_composer.analysis.domain.value_objects import ConventionalAnalysis
from diff_composer.analysis.repositories.factory import create_llm_agent
from diff_composer.analysis.services.batch_analysis_service import BatchAnalysisService
from diff_composer.analysis.services.map_reduce_service import MapReduceService
from diff_composer.compose.domain.value_objects import ChangeGroup, ComposeAnalysis
from diff_composer.compose.services.compose_service import ComposeService
from diff_composer.config import ComposerConfig, load_config
from diff_composer.errors import ComposeValidationError, DiffComposerError
from diff_composer.git.domain.selectors import describe_selector
from diff_composer.git.domain.value_objects import CommitRange, DiffMode
from diff_composer.git.repositories.implementations import GitRepositoryImpl
from diff_composer.git.services.patch_service import PatchService, create_patch_for_changes
from diff_composer.git.services.truncation_service import smart_truncate_diff


def is_git_repository(repo_path: Path) -> bool:
    """Check if the given path is a git repository."""
    git_dir = repo_path / ".git"
    return git_dir.exists()


def validate_repo_path(repo_path: Path) -> tuple[bool, str]:
    """
    Validate the repository path and return (is_valid, error_message).

    Args:
        repo_path: Path to the git repository

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not repo_path.exists():
        return False, f"Repository path does not exist: {repo_path}"

    if not repo_path.is_dir():
        return False, f"Repository path is not a directory: {repo_path}"

    if not is_git_repository(repo_path):
        return False, f"Path is not a git repository: {repo_path}"

    return True, "Repository is valid"


def format_analysis(analysis: ConventionalAnalysis) -> str:
    """Render an analysis as a commit header followed by bullet details."""
    lines = [analysis.header()]
    if analysis.details:
        lines.append("")
        lines.extend(f"- {text}" for text in analysis.body_texts)
    if analysis.issue_refs:
        lines.append("")
        lines.append(f"Refs: {', '.join(analysis.issue_refs)}")
    return "\n".join(lines)


def print_plan(analysis: ComposeAnalysis, full_diff: str, show_patches: bool) -> None:
    """Print the groups in commit order, optionally with their partial patches."""
    total = len(analysis.dependency_order)
    for position, (index, group) in enumerate(analysis.ordered_groups(), start=1):
        print(f"\n[{position}/{total}] Group {index}: {group.commit_message()}")
        if group.dependencies:
            print(f"  Depends on: {', '.join(str(dep) for dep in group.dependencies)}")
        for change in group.changes:
            selectors = ", ".join(describe_selector(selector) for selector in change.hunks)
            print(f"  {change.path} ({selectors})")
        partial = [change for change in group.changes if not change.is_whole_file]
        if show_patches and partial:
            print(create_patch_for_changes(full_diff, partial))


def _build_config(args: argparse.Namespace) -> ComposerConfig:
    return load_config(
        max_diff_length=getattr(args, "max_diff_length", None),
        map_parallelism=getattr(args, "map_parallelism", None),
    )


def run_analyze(args: argparse.Namespace) -> int:
    config = _build_config(args)
    mode = DiffMode.STAGED if args.staged else DiffMode.UNSTAGED
    git_repo = GitRepositoryImpl()

    print(f"📝 Analyzing {mode.value} changes in {args.repo_path}...")
    diff = git_repo.get_diff(args.repo_path, mode)
    stat = git_repo.get_stat(args.repo_path, mode)

    analysis_service = MapReduceService(create_llm_agent(args.model, config), config)
    if analysis_service.should_use_map_reduce(diff):
        print("   Using map-reduce analysis")
    analysis = analysis_service.analyze(diff, stat)

    print("=" * 80)
    print(format_analysis(analysis))
    print("=" * 80)
    print("\n✓ Analysis generated successfully!")
    return 0


def run_truncate(args: argparse.Namespace) -> int:
    config = _build_config(args)
    mode = DiffMode.STAGED if args.staged else DiffMode.UNSTAGED
    diff = GitRepositoryImpl().get_diff(args.repo_path, mode)
    print(smart_truncate_diff(diff, config.max_diff_length, config))
    return 0


def run_compose(args: argparse.Namespace) -> int:
    config = _build_config(args)
    git_repo = GitRepositoryImpl()

    # Capture the baseline once, against HEAD, before any group moves it forward
    git_repo.reset_staging(args.repo_path)
    full_diff = git_repo.get_diff(args.repo_path, DiffMode.UNSTAGED)

    if args.groups is not None:
        print(f"📄 Loading change groups from {args.groups}...")
        compose_service = ComposeService(git_repo, PatchService(git_repo), config=config)
        try:
            groups_text = args.groups.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ComposeValidationError(
                f"Groups file {args.groups} is not valid UTF-8: {e}"
            ) from e
        groups = compose_service.parse_groups(groups_text)
    else:
        print(f"📝 Proposing up to {args.max_commits} commit group(s)...")
        stat = git_repo.get_stat(args.repo_path, DiffMode.UNSTAGED)
        compose_service = ComposeService(
            git_repo,
            PatchService(git_repo),
            llm_agent=create_llm_agent(args.model, config),
            config=config,
        )
        groups = compose_service.propose(full_diff, stat, args.max_commits)

    analysis = compose_service.plan(groups, full_diff)
    print(f"✓ {len(analysis.groups)} group(s) cover all changed files")

    if args.save_plan is not None:
        args.save_plan.write_text(json.dumps(analysis.to_dict(), indent=2), encoding="utf-8")
        print(f"  Plan saved to {args.save_plan}")

    if args.preview:
        print_plan(analysis, full_diff, show_patches=True)
        print("\n  (Preview only, nothing was staged or committed)")
        return 0

    print_plan(analysis, full_diff, show_patches=False)
    commit_hashes: list[str] = []

    def commit_group(index: int, group: ChangeGroup) -> None:
        commit_hash = git_repo.commit(args.repo_path, group.commit_message())
        commit_hashes.append(commit_hash)
        print(f"✓ Group {index} committed as {commit_hash[:8]}")

    compose_service.stage_in_order(analysis, args.repo_path, full_diff, commit_group)
    print(f"\n✓ Created {len(commit_hashes)} commit(s)")
    return 0


def run_batch(args: argparse.Namespace) -> int:
    config = _build_config(args)
    git_repo = GitRepositoryImpl()
    commit_range = CommitRange(
        repo_path=args.repo_path, commit_a=args.commit_a, commit_b=args.commit_b
    )

    print(f"📝 Analyzing commits from {args.commit_a[:8]} to {args.commit_b[:8]}...")
    analysis_service = MapReduceService(create_llm_agent(args.model, config), config)
    batch_service = BatchAnalysisService(git_repo, analysis_service, args.parallelism)
    results = batch_service.analyze_commits(commit_range)

    failures = 0
    for result in results:
        short_hash = result.commit.hash[:8]
        if result.succeeded:
            assert result.analysis is not None
            marker = " (map-reduce)" if result.used_map_reduce else ""
            print(f"✓ {short_hash} {result.analysis.header()}{marker}")
            for text in result.analysis.body_texts:
                print(f"    - {text}")
        else:
            failures += 1
            print(f"✗ {short_hash} {result.error}", file=sys.stderr)

    print(f"\n✓ Analyzed {len(results) - failures}/{len(results)} commit(s)")
    return 1 if failures else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze git changes and split them into atomic conventional commits"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress of git and model calls",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "repo_path",
        type=Path,
        help="Path to the git repository directory",
    )
    common.add_argument(
        "--max-diff-length",
        type=int,
        default=None,
        help="Maximum diff size in characters sent to the model (default: 100000)",
    )

    model_options = argparse.ArgumentParser(add_help=False)
    model_options.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model name override (defaults to ANTHROPIC_MODEL or OPENAI_MODEL)",
    )
    model_options.add_argument(
        "--map-parallelism",
        type=int,
        default=None,
        help="Number of files analyzed concurrently in the map phase (default: 8)",
    )

    analyze = subparsers.add_parser(
        "analyze", parents=[common, model_options], help="Classify the current changes"
    )
    analyze.add_argument(
        "--staged",
        action="store_true",
        help="Analyze staged changes instead of unstaged ones",
    )
    analyze.set_defaults(func=run_analyze)

    truncate = subparsers.add_parser(
        "truncate", parents=[common], help="Print the diff truncated to the budget"
    )
    truncate.add_argument(
        "--staged",
        action="store_true",
        help="Use staged changes instead of unstaged ones",
    )
    truncate.set_defaults(func=run_truncate)

    compose = subparsers.add_parser(
        "compose",
        parents=[common, model_options],
        help="Split the working tree changes into ordered commits",
    )
    compose.add_argument(
        "--groups",
        type=Path,
        default=None,
        help="JSON file with change groups. When omitted, groups are proposed by the model",
    )
    compose.add_argument(
        "--max-commits",
        type=int,
        default=3,
        help="Maximum number of commits the model may propose (default: 3)",
    )
    compose.add_argument(
        "--preview",
        action="store_true",
        help="Print the plan and patches without staging or committing",
    )
    compose.add_argument(
        "--save-plan",
        type=Path,
        default=None,
        help="Write the validated plan as JSON to this file",
    )
    compose.set_defaults(func=run_compose)

    batch = subparsers.add_parser(
        "batch", parents=[common, model_options], help="Classify every commit of a range"
    )
    batch.add_argument("commit_a", type=str, help="Hash of commit A (older commit, excluded)")
    batch.add_argument("commit_b", type=str, help="Hash of commit B (newer commit, included)")
    batch.add_argument(
        "--parallelism",
        type=int,
        default=4,
        help="Number of commits analyzed concurrently (default: 4)",
    )
    batch.set_defaults(func=run_batch)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments, validate the repository and run the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not logging.root.handlers:
        logging.basicConfig(
            level=logging.INFO if args.verbose else logging.WARNING,
            format="%(levelname)s  %(name)s  %(message)s",
        )

    is_valid, message = validate_repo_path(args.repo_path)
    if not is_valid:
        print(f"✗ Validation failed: {message}", file=sys.stderr)
        sys.exit(1)

    try:
        sys.exit(args.func(args))
    except DiffComposerError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except UnicodeDecodeError as e:
        print(f"✗ Could not decode {args.command} input as UTF-8: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"✗ Configuration error: {e}", file=sys.stderr)
        print(
            "  Hint: Set ANTHROPIC_API_KEY or OPENAI_API_KEY in .env file or environment",
            file=sys.stderr,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
