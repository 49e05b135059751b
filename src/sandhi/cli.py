"""Command-line interface for sandhi."""

import asyncio
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sandhi import __version__
from sandhi.config import ConfigurationError, SandhiConfig
from sandhi.github import GitHubClient, GitHubError
from sandhi.history import (
    DEFAULT_HISTORY_LIMIT,
    CommitDiff,
    RepositoryDiff,
    collect_overall_stats,
    compare_group_endpoints,
    diff_revisions,
    diff_working_directory,
    get_commit_diff,
    get_commit_history,
)
from sandhi.models import BatchSummary, EndpointResult
from sandhi.orchestrator import (
    AllEndpoints,
    BatchOperation,
    BatchOrchestrator,
    CloneOperation,
    FetchOperation,
    GroupSelector,
    PullOperation,
    PushOperation,
    Selector,
    TagOperation,
)
from sandhi.registry import (
    AuthMode,
    EndpointGroup,
    EndpointRegistry,
    RegistryError,
    RepositoryEndpoint,
    SharedRegistry,
)
from sandhi.vcs import GitManager
from sandhi.verification import TokenProbe, verify_credentials

app = typer.Typer(
    name="sandhi",
    help="Commit once, sync with many git remotes",
    add_completion=False,
)
repo_app = typer.Typer(help="Manage configured repositories", no_args_is_help=True)
group_app = typer.Typer(help="Manage repository groups", no_args_is_help=True)
auth_app = typer.Typer(help="GitHub OAuth helpers", no_args_is_help=True)
app.add_typer(repo_app, name="repo")
app.add_typer(group_app, name="group")
app.add_typer(auth_app, name="auth")

console = Console()

# Help text constants
VERBOSE_OUTPUT_HELP = "Verbose output"
ENV_FILE_HELP = "Path to custom environment file (default: .env.sandhi or .env)"
GROUP_HELP = "Only target repositories in this group"
BRANCH_HELP = "Branch to sync (default: configured default branch)"


def setup_logging(verbose: bool) -> None:
    """Setup logging configuration.

    Args:
        verbose: If True, enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )

    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("git").setLevel(logging.WARNING)


@contextmanager
def handle_errors(verbose: bool = False) -> Iterator[None]:
    """Turn configuration/registry errors into a red message and exit code 1."""
    try:
        yield
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    except RegistryError as e:
        console.print(f"[red]Repository configuration error: {e}[/red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


def load_shared_registry(config: SandhiConfig) -> SharedRegistry:
    """Load the registry document named by the configuration."""
    return SharedRegistry.from_file(config.config_file)


def _selector(group: str | None) -> Selector:
    return GroupSelector(name=group) if group else AllEndpoints()


def _display_results(title: str, results: list[EndpointResult]) -> None:
    """Print the per-repository results table and exit 1 on any failure."""
    table = Table(title=title)
    table.add_column("Repository", style="cyan")
    table.add_column("Result")

    for result in results:
        style = "green" if result.success else "red"
        status = "✓" if result.success else "✗"
        table.add_row(result.endpoint_name, f"[{style}]{status} {result.message}[/{style}]")

    console.print(table)

    summary = BatchSummary.from_results(results)
    console.print(f"\n  [green]{summary.succeeded} succeeded[/green], [red]{summary.failed} failed[/red]")
    if summary.has_failures:
        sys.exit(1)


def _run_batch(config: SandhiConfig, title: str, group: str | None, operation: BatchOperation) -> None:
    orchestrator = BatchOrchestrator(load_shared_registry(config), config.repo_path)
    with console.status(f"[bold blue]{title}...[/bold blue]"):
        results = orchestrator.run(_selector(group), operation)
    _display_results(title, results)


@app.command()
def push(
    message: str | None = typer.Option(None, "--message", "-m", help="Commit message"),
    branch: str | None = typer.Option(None, "--branch", "-b", help=BRANCH_HELP),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_HELP),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Stage and commit all changes, then push to every repository."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)
        operation = PushOperation(
            message=message or config.commit_message,
            branch=branch or config.default_branch,
        )
        _run_batch(config, "Push", group, operation)


@app.command()
def pull(
    branch: str | None = typer.Option(None, "--branch", "-b", help=BRANCH_HELP),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_HELP),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Fetch and merge a branch from every repository."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)
        _run_batch(config, "Pull", group, PullOperation(branch=branch or config.default_branch))


@app.command()
def fetch(
    branch: str | None = typer.Option(None, "--branch", "-b", help=BRANCH_HELP),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_HELP),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Fetch a branch from every repository without merging."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)
        _run_batch(config, "Fetch", group, FetchOperation(branch=branch or config.default_branch))


@app.command()
def tag(
    name: str = typer.Argument(..., help="Tag name"),
    message: str | None = typer.Option(None, "--message", "-m", help="Tag message (default: tag name)"),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_HELP),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Create an annotated tag at the current commit and push it everywhere."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)
        _run_batch(config, "Tag", group, TagOperation(name=name, message=message or name))


@app.command()
def clone(
    base_path: Path | None = typer.Argument(None, help="Directory to clone into (default: configured path)"),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_HELP),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Clone every repository into BASE_PATH/<name>."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)
        _run_batch(config, "Clone", group, CloneOperation(base_path=base_path or config.clone_base_path))


def github_token_probe(config: SandhiConfig) -> TokenProbe:
    """Build a token probe that asks the GitHub API who owns the token."""

    def probe(token: str) -> bool:
        async def _check() -> bool:
            async with GitHubClient(config) as client:
                return await client.test_token(token)

        return asyncio.run(_check())

    return probe


@app.command()
def verify(
    online: bool = typer.Option(False, "--online", help="Check tokens against the GitHub API"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Check that every repository's credentials look usable."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)
        registry = load_shared_registry(config).snapshot()

        probe = github_token_probe(config) if online else None

        all_ok = True
        for endpoint in registry.endpoints:
            ok = verify_credentials(endpoint, probe)
            all_ok = all_ok and ok
            mark = "[green]✓[/green]" if ok else "[red]✗[/red]"
            console.print(f"  {mark} {endpoint.name} ({endpoint.auth_mode.display_name})")

        if not all_ok:
            sys.exit(1)


@app.command()
def status(
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Show the local working copy state and configured repositories."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        manager = GitManager(config.repo_path)
        registry = load_shared_registry(config).snapshot()

        console.print(f"[bold]Branch:[/bold] {manager.get_current_branch()}")
        clean = "[green]clean[/green]" if manager.is_clean() else "[yellow]uncommitted changes[/yellow]"
        console.print(f"[bold]Working tree:[/bold] {clean}")
        if manager.has_conflicts():
            console.print("[red]Unresolved merge conflicts:[/red]")
            for path in manager.conflicted_paths():
                console.print(f"  - {path}")
        console.print(f"[bold]Repositories:[/bold] {len(registry.endpoints)} in '{registry.config_name}'")


@app.command()
def history(
    limit: int = typer.Option(DEFAULT_HISTORY_LIMIT, "--limit", "-n", min=1, help="Number of commits to show"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Show recent commits of the working copy."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        commits = get_commit_history(config.repo_path, limit)

        if not commits:
            console.print("[yellow]No commits yet[/yellow]")
            return

        table = Table(title="Commit history")
        table.add_column("Commit", style="cyan")
        table.add_column("Date")
        table.add_column("Author")
        table.add_column("Message")
        for commit in commits:
            table.add_row(commit.short_id, f"{commit.date:%Y-%m-%d %H:%M}", commit.author, commit.summary)
        console.print(table)


def _print_diff(result: RepositoryDiff, stat_only: bool) -> None:
    console.print(f"[bold]{result.name}[/bold]: {result.base} → {result.target}")
    console.print(f"  {result.stats.summary}")
    if not stat_only and result.diff_content:
        console.print(result.diff_content, markup=False, highlight=False)


def _print_commit_diff(result: CommitDiff, stat_only: bool) -> None:
    commit = result.commit
    console.print(f"[bold]commit {commit.id}[/bold]")
    console.print(f"Author: {commit.author} <{commit.author_email}>")
    console.print(f"Date:   {commit.date:%Y-%m-%d %H:%M:%S %z}")
    console.print(f"\n    {commit.summary}\n", markup=False)

    table = Table()
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("+", style="green", justify="right")
    table.add_column("-", style="red", justify="right")
    for change in result.file_changes:
        path = f"{change.old_path} → {change.path}" if change.old_path else change.path
        table.add_row(path, change.status.value, str(change.additions), str(change.deletions))
    console.print(table)
    console.print(result.stats.summary)

    if not stat_only and result.diff_content:
        console.print(result.diff_content, markup=False, highlight=False)


@app.command()
def diff(
    base: str | None = typer.Argument(None, help="Revision to diff from (default: HEAD against the working tree)"),
    target: str | None = typer.Argument(None, help="Revision to diff to"),
    commit: str | None = typer.Option(None, "--commit", "-c", help="Show the changes made by one commit"),
    group: str | None = typer.Option(None, "--group", "-g", help="Compare a branch across a group's repositories"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch compared with --group"),
    stat_only: bool = typer.Option(False, "--stat", help="Only show statistics, not the patch"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Show differences between revisions, a commit, or a group's repositories."""
    setup_logging(verbose)

    modes = [mode for mode in (base, commit, group) if mode]
    if len(modes) > 1:
        raise typer.BadParameter("Use only one of BASE [TARGET], --commit or --group")
    if target and not base:
        raise typer.BadParameter("TARGET needs BASE")

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)

        if commit:
            _print_commit_diff(get_commit_diff(config.repo_path, commit), stat_only)
            return

        if group:
            registry = load_shared_registry(config).snapshot()
            with console.status(f"[bold blue]Comparing group '{group}'...[/bold blue]"):
                results = compare_group_endpoints(
                    registry, group, config.repo_path, branch or config.default_branch
                )
            if not results:
                console.print(f"[yellow]Group '{group}' has fewer than two repositories[/yellow]")
                return
            for result in results:
                _print_diff(result, stat_only)
            return

        if base:
            _print_diff(diff_revisions(config.repo_path, base, target or "HEAD"), stat_only)
        else:
            _print_diff(diff_working_directory(config.repo_path), stat_only)


@app.command()
def stats(
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch read for every repository"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Show commit statistics for the working copy, repositories and groups.

    Repository figures come from the last push, pull or fetch.
    """
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        registry = load_shared_registry(config).snapshot()
        overall = collect_overall_stats(registry, config.repo_path, branch or config.default_branch)

        local = overall.local
        console.print(
            f"[bold]Working copy:[/bold] {local.total_commits} commits, {local.total_files} files, "
            f"{len(local.contributors)} contributors, {len(local.branches)} branches, {len(local.tags)} tags"
        )

        table = Table(title="Repositories")
        table.add_column("Repository", style="cyan")
        table.add_column("Commits", justify="right")
        table.add_column("Files", justify="right")
        table.add_column("Contributors", justify="right")
        table.add_column("Branches", justify="right")
        table.add_column("Last commit")
        for repo_stats in overall.repository_stats:
            if repo_stats.revision is None:
                table.add_row(repo_stats.name, "-", "-", "-", str(len(repo_stats.branches)), "not fetched")
                continue
            last = f"{repo_stats.last_commit_date:%Y-%m-%d}" if repo_stats.last_commit_date else "-"
            table.add_row(
                repo_stats.name,
                str(repo_stats.total_commits),
                str(repo_stats.total_files),
                str(len(repo_stats.contributors)),
                str(len(repo_stats.branches)),
                last,
            )
        console.print(table)

        if overall.group_stats:
            groups = Table(title="Groups")
            groups.add_column("Group", style="cyan")
            groups.add_column("Repositories", justify="right")
            groups.add_column("Commits", justify="right")
            groups.add_column("Avg commits", justify="right")
            groups.add_column("Contributors", justify="right")
            for group_stats in overall.group_stats:
                groups.add_row(
                    group_stats.name,
                    str(group_stats.total_repositories),
                    str(group_stats.total_commits),
                    f"{group_stats.avg_commits_per_repo:.1f}",
                    str(group_stats.total_contributors),
                )
            console.print(groups)

        console.print(
            f"\n  {overall.total_repositories} repositories, {overall.total_groups} groups, "
            f"{overall.total_commits} commits, {overall.total_contributors} contributors"
        )


@app.command()
def config(
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Show current configuration."""
    try:
        cfg = SandhiConfig(env_file=env_file)
        console.print("[bold]Current Configuration:[/bold]\n")
        console.print(f"  Registry file: {cfg.config_file}")
        console.print(f"  Working copy: {cfg.repo_path}")
        console.print(f"  Default branch: {cfg.default_branch}")
        console.print(f"  Commit message: {cfg.commit_message}")
        console.print(f"  Clone path: {cfg.clone_base_path}")
        console.print("\n[bold]GitHub:[/bold]")
        console.print(f"  API URL: {cfg.github_api_url}")
        console.print(f"  OAuth app: {'configured' if cfg.has_oauth_app else 'not configured'}")
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"sandhi version {__version__}")


@contextmanager
def _editing(config: SandhiConfig) -> Iterator[EndpointRegistry]:
    """Edit the registry and save it when the block succeeds."""
    shared = load_shared_registry(config)
    with shared.edit() as registry:
        yield registry
    shared.save(config.config_file)


@repo_app.command("add")
def repo_add(
    name: str = typer.Argument(..., help="Repository name (also used as the git remote name)"),
    url: str = typer.Argument(..., help="Remote URL (https://, http:// or git@host:path)"),
    auth: AuthMode = typer.Option(AuthMode.DEFAULT, "--auth", help="Authentication mode"),
    token: str = typer.Option("", "--token", help="Access token (token auth)"),
    ssh_key: str = typer.Option("", "--ssh-key", help="Private key path (ssh auth)"),
    group: str | None = typer.Option(None, "--group", "-g", help="Add the repository to this group"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Add a repository."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        endpoint = RepositoryEndpoint.with_auth(name, url, auth, auth_token=token, ssh_key_path=ssh_key)
        with _editing(config) as registry:
            registry.add_endpoint(endpoint)
            if group:
                registry.add_member(group, name)
        console.print(f"[green]Added repository '{name}'[/green]")


@repo_app.command("remove")
def repo_remove(
    name: str = typer.Argument(..., help="Repository name"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Remove a repository and drop it from every group."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        with _editing(config) as registry:
            registry.remove_endpoint_by_name(name)
        console.print(f"[green]Removed repository '{name}'[/green]")


@repo_app.command("list")
def repo_list(
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """List configured repositories."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        registry = load_shared_registry(config).snapshot()

        table = Table(title=f"Repositories ({registry.config_name})")
        table.add_column("Name", style="cyan")
        table.add_column("URL")
        table.add_column("Auth")
        table.add_column("Group")
        for endpoint in registry.endpoints:
            table.add_row(endpoint.name, endpoint.url, endpoint.auth_mode.display_name, endpoint.group or "-")
        console.print(table)


@group_app.command("add")
def group_add(
    name: str = typer.Argument(..., help="Group name"),
    description: str = typer.Option("", "--description", "-d", help="Group description"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Create an empty group."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        with _editing(config) as registry:
            registry.add_group(EndpointGroup(name=name, description=description))
        console.print(f"[green]Created group '{name}'[/green]")


@group_app.command("remove")
def group_remove(
    name: str = typer.Argument(..., help="Group name"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Delete a group. Its repositories are kept."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        with _editing(config) as registry:
            registry.remove_group(name)
        console.print(f"[green]Removed group '{name}'[/green]")


@group_app.command("add-member")
def group_add_member(
    group: str = typer.Argument(..., help="Group name"),
    repository: str = typer.Argument(..., help="Repository name"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Add a repository to a group."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        with _editing(config) as registry:
            registry.add_member(group, repository)
        console.print(f"[green]Added '{repository}' to '{group}'[/green]")


@group_app.command("remove-member")
def group_remove_member(
    group: str = typer.Argument(..., help="Group name"),
    repository: str = typer.Argument(..., help="Repository name"),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Remove a repository from a group."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        with _editing(config) as registry:
            registry.remove_member(group, repository)
        console.print(f"[green]Removed '{repository}' from '{group}'[/green]")


@group_app.command("list")
def group_list(
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """List groups and their members."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        registry = load_shared_registry(config).snapshot()

        for group in registry.groups:
            members = ", ".join(endpoint.name for endpoint in registry.endpoints_in_group(group.name))
            console.print(f"[cyan]{group.name}[/cyan]: {group.description}")
            console.print(f"  {members or '(no repositories)'}")


@auth_app.command("url")
def auth_url(
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
) -> None:
    """Print the GitHub authorization URL to open in a browser."""
    with handle_errors():
        config = SandhiConfig(env_file=env_file)
        console.print(GitHubClient(config).authorization_url())


@auth_app.command("exchange")
def auth_exchange(
    code: str = typer.Argument(..., help="Authorization code from the redirect"),
    repository: str | None = typer.Option(
        None,
        "--repository",
        "-r",
        help="Store the token on this repository and switch it to token auth",
    ),
    env_file: str | None = typer.Option(None, "--env-file", help=ENV_FILE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OUTPUT_HELP),
) -> None:
    """Exchange an OAuth code for an access token."""
    setup_logging(verbose)

    with handle_errors(verbose):
        config = SandhiConfig(env_file=env_file)

        async def _exchange() -> tuple[str, str]:
            async with GitHubClient(config) as client:
                token = await client.exchange_code(code)
                user = await client.get_user(token.access_token)
                return token.access_token, user.login

        try:
            access_token, login = asyncio.run(_exchange())
        except GitHubError as e:
            console.print(f"[red]GitHub error: {e}[/red]")
            sys.exit(1)

        console.print(f"[green]Authorized as {login}[/green]")
        if repository:
            with _editing(config) as registry:
                endpoint = registry.find_endpoint(repository)
                if endpoint is None:
                    console.print(f"[red]Repository '{repository}' not found[/red]")
                    sys.exit(1)
                endpoint.auth_mode = AuthMode.TOKEN
                endpoint.auth_token = access_token
            console.print(f"[green]Stored token on '{repository}'[/green]")


if __name__ == "__main__":
    app()
