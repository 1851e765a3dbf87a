"""Command-line interface for OmniTube."""

import asyncio
import sys
from dataclasses import dataclass

import click
from rich.console import Console
from rich.table import Table

from omnitube.accounts import AccountsModel
from omnitube.backends import create_registry
from omnitube.config import Config
from omnitube.errors import OmnitubeError
from omnitube.logging_setup import configure_logging
from omnitube.models import (
    SEGMENT_CATEGORIES, BackendKind, Channel, ContentItem, ContentType, SearchDate,
    SearchDuration, SortOrder, TrendingCategory, Video, category_description,
)
from omnitube.resources import ResourceCache
from omnitube.search import RecentsModel, SearchModel
from omnitube.settings import SettingsStore
from omnitube.sponsorblock import SponsorBlockAPI
from omnitube.subscriptions import SubscriptionsModel


console = Console()


@dataclass
class App:
    """Models wired together from the configuration."""
    config: Config
    settings: SettingsStore
    accounts: AccountsModel
    subscriptions: SubscriptionsModel
    recents: RecentsModel
    search: SearchModel
    sponsor_block: SponsorBlockAPI

    @classmethod
    def create(cls, config: Config | None = None) -> "App":
        config = config or Config.load()
        settings = config.create_settings()
        registry = create_registry(
            cache=ResourceCache(ttl_seconds=config.cache_ttl_seconds),
            timeout=config.request_timeout,
            user_agent=config.user_agent,
        )
        accounts = AccountsModel(settings, registry)
        recents = RecentsModel(settings, limit=config.recents_limit)
        return cls(
            config=config,
            settings=settings,
            accounts=accounts,
            subscriptions=SubscriptionsModel(accounts),
            recents=recents,
            search=SearchModel(
                accounts,
                recents,
                suggestions_delay=config.suggestions_debounce,
                query_delay=config.query_debounce,
            ),
            sponsor_block=SponsorBlockAPI(settings, timeout=config.request_timeout),
        )

    def require_account(self) -> None:
        if self.accounts.restore() is None:
            console.print("[red]No instance configured. Use 'omnitube instances add' first.[/red]")
            sys.exit(1)

    async def aclose(self) -> None:
        await self.accounts.registry.aclose()
        await self.sponsor_block.aclose()
        self.settings.close()


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS or M:SS."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_count(value: int | None) -> str:
    if value is None:
        return "-"
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if value >= threshold:
            return f"{value / threshold:.1f}{suffix}"
    return str(value)


def _videos_table(videos: list[Video]) -> Table:
    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Channel")
    table.add_column("Length", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Published")

    for video in videos:
        table.add_row(
            video.video_id,
            video.title,
            video.author,
            format_duration(video.length),
            format_count(video.views),
            video.published,
        )
    return table


def _channels_table(channels: list[Channel]) -> Table:
    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Subscribers", justify="right")

    for channel in channels:
        table.add_row(channel.id, channel.name, format_count(channel.subscriptions_count))
    return table


def _items_table(items: list[ContentItem]) -> Table:
    table = Table(show_header=True)
    table.add_column("Type")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Details")

    for item in items:
        match item.content_type:
            case ContentType.VIDEO:
                video = item.video
                details = f"{video.author} · {format_duration(video.length)} · {format_count(video.views)} views"
                table.add_row("video", video.video_id, video.title, details)
            case ContentType.CHANNEL:
                channel = item.channel
                details = f"{format_count(channel.subscriptions_count)} subscribers"
                table.add_row("[cyan]channel[/cyan]", channel.id, channel.name, details)
            case ContentType.PLAYLIST:
                playlist = item.playlist
                table.add_row("[magenta]playlist[/magenta]", playlist.id, playlist.title, f"{len(playlist.videos)} videos")
    return table


def run(coroutine_factory) -> None:
    """Run an async command against a fresh App and close it afterwards."""
    async def runner() -> None:
        app = App.create()
        try:
            await coroutine_factory(app)
        finally:
            await app.aclose()

    asyncio.run(runner())


@click.group()
@click.version_option(package_name="omnitube")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool) -> None:
    """OmniTube - Invidious and Piped client."""
    configure_logging(Config.load().log_level, verbose=verbose)


# =============================================================================
# Instances and accounts
# =============================================================================


@main.group()
def instances() -> None:
    """Manage front-end instances."""
    pass


@instances.command("add")
@click.argument("backend", type=click.Choice([k.value for k in BackendKind]))
@click.argument("url")
@click.option("--name", default=None, help="Display name (defaults to the URL)")
def instances_add(backend: str, url: str, name: str | None) -> None:
    """Add an instance by URL."""
    app = App.create()
    instance = app.accounts.add_instance(BackendKind(backend), name or url, url)
    console.print(f"[green]Added instance: {instance.name} ({instance.id})[/green]")


@instances.command("list")
def instances_list() -> None:
    """List configured instances."""
    app = App.create()
    if not app.accounts.instances:
        console.print("[dim]No instances configured. Use 'omnitube instances add' to add one.[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Backend")
    table.add_column("URL")
    for instance in app.accounts.instances:
        table.add_row(instance.id, instance.name, instance.backend.value, instance.url)
    console.print(table)


@main.group()
def accounts() -> None:
    """Manage accounts."""
    pass


@accounts.command("add")
@click.argument("instance_id")
@click.argument("name")
@click.option("--sid", default=None, help="Session id of a signed-in account")
def accounts_add(instance_id: str, name: str, sid: str | None) -> None:
    """Add an account on an instance."""
    app = App.create()
    instance = app.accounts.find_instance(instance_id)
    if instance is None:
        console.print(f"[red]Instance not found: {instance_id}[/red]")
        sys.exit(1)

    account = app.accounts.add(instance, name, sid)
    app.accounts.set_current(account)
    console.print(f"[green]Added account: {account.name} ({account.id})[/green]")


@accounts.command("list")
def accounts_list() -> None:
    """List accounts."""
    app = App.create()
    last_used = app.accounts.last_used

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Instance")
    table.add_column("Signed in")
    for account in app.accounts.all:
        marker = " [green]*[/green]" if last_used and last_used.id == account.id else ""
        table.add_row(account.id, account.name + marker, account.instance.url, "no" if account.anonymous else "yes")
    console.print(table)


@accounts.command("use")
@click.argument("account_id")
def accounts_use(account_id: str) -> None:
    """Switch the active account."""
    app = App.create()
    account = app.accounts.find(account_id)
    if account is None:
        console.print(f"[red]Account not found: {account_id}[/red]")
        sys.exit(1)
    app.accounts.set_current(account)
    console.print(f"[green]Using {account.name} on {account.instance.url}[/green]")


@accounts.command("remove")
@click.argument("account_id")
def accounts_remove(account_id: str) -> None:
    """Remove an account."""
    app = App.create()
    account = app.accounts.find(account_id)
    if account is None:
        console.print(f"[red]Account not found: {account_id}[/red]")
        sys.exit(1)
    app.accounts.remove(account)
    console.print(f"[yellow]Removed account: {account.name}[/yellow]")


# =============================================================================
# Browsing
# =============================================================================


@main.command("search")
@click.argument("query")
@click.option("--sort", "sort_by", type=click.Choice([s.value for s in SortOrder]), default="relevance")
@click.option("--date", type=click.Choice([d.value for d in SearchDate]), default="any")
@click.option("--duration", type=click.Choice([d.value for d in SearchDuration]), default="any")
def search(query: str, sort_by: str, date: str, duration: str) -> None:
    """Search videos, channels and playlists."""
    async def command(app: App) -> None:
        app.require_account()
        model = app.search
        if app.accounts.api.supports_search_filters:
            model.change_query(sort_by=SortOrder(sort_by), date=SearchDate(date), duration=SearchDuration(duration))
        elif (sort_by, date, duration) != ("relevance", "any", "any"):
            console.print("[yellow]Search filters are not supported by this backend; ignoring them.[/yellow]")
        model.submit(query)
        await model.settle()

        if model.no_results:
            console.print("[dim]No results[/dim]")
            return
        console.print(_items_table(model.items.value))

    run(command)


@main.command("suggest")
@click.argument("text")
def suggest(text: str) -> None:
    """Show search suggestions."""
    async def command(app: App) -> None:
        app.require_account()
        try:
            suggestions = await app.accounts.api.search_suggestions(text)
        except OmnitubeError as e:
            console.print(f"[red]Failed to load suggestions: {e}[/red]")
            sys.exit(1)
        for suggestion in suggestions:
            console.print(suggestion)

    run(command)


@main.command("trending")
@click.option("--region", default="US", help="Two-letter country code")
@click.option("--category", type=click.Choice([c.value for c in TrendingCategory]), default=None)
def trending(region: str, category: str | None) -> None:
    """Show trending videos."""
    async def command(app: App) -> None:
        app.require_account()
        api = app.accounts.api
        if category and not api.capabilities.supports_trending_categories:
            console.print("[yellow]Trending categories are not supported by this backend.[/yellow]")
        try:
            videos = await api.fetch_trending(region, TrendingCategory(category) if category else None)
        except OmnitubeError as e:
            console.print(f"[red]Failed to load trending: {e}[/red]")
            sys.exit(1)
        console.print(_videos_table(videos))

    run(command)


@main.command("video")
@click.argument("video_id")
def video(video_id: str) -> None:
    """Show a video and its streams."""
    async def command(app: App) -> None:
        app.require_account()
        try:
            item = await app.accounts.api.fetch_video(video_id)
        except OmnitubeError as e:
            console.print(f"[red]Failed to load video: {e}[/red]")
            sys.exit(1)

        console.print(f"[bold]{item.title}[/bold]")
        console.print(f"[dim]{item.author} · {format_duration(item.length)} · {format_count(item.views)} views · {item.published}[/dim]")
        if item.description:
            console.print(item.description[:500])

        table = Table(show_header=True)
        table.add_column("Kind")
        table.add_column("Resolution")
        table.add_column("URL", overflow="fold")
        for stream in item.streams:
            table.add_row(stream.kind.value, stream.resolution.value, stream.url or "")
        console.print(table)

    run(command)


@main.command("channel")
@click.argument("channel_id")
def channel(channel_id: str) -> None:
    """Show a channel and its latest videos."""
    async def command(app: App) -> None:
        app.require_account()
        try:
            result = await app.accounts.api.fetch_channel(channel_id)
        except OmnitubeError as e:
            console.print(f"[red]Failed to load channel: {e}[/red]")
            sys.exit(1)
        console.print(f"[bold]{result.name}[/bold] [dim]{format_count(result.subscriptions_count)} subscribers[/dim]")
        if result.videos:
            console.print(_videos_table(result.videos))

    run(command)


# =============================================================================
# Subscriptions
# =============================================================================


@main.command("subscriptions")
@click.option("--refresh", is_flag=True, help="Bypass the cache")
def subscriptions(refresh: bool) -> None:
    """List subscribed channels."""
    async def command(app: App) -> None:
        app.require_account()
        if not app.subscriptions.supported:
            console.print("[yellow]This account cannot list subscriptions.[/yellow]")
            return
        await app.subscriptions.load(force=refresh)
        console.print(_channels_table(app.subscriptions.all))

    run(command)


@main.command("subscribe")
@click.argument("channel_id")
def subscribe(channel_id: str) -> None:
    """Subscribe to a channel."""
    async def command(app: App) -> None:
        app.require_account()
        if not app.subscriptions.supported:
            console.print("[yellow]This account cannot manage subscriptions.[/yellow]")
            return
        await app.subscriptions.subscribe(channel_id)
        if app.subscriptions.is_subscribing(channel_id):
            console.print(f"[green]Subscribed to {channel_id}[/green]")
        else:
            console.print(f"[red]Subscription to {channel_id} not confirmed[/red]")

    run(command)


@main.command("unsubscribe")
@click.argument("channel_id")
def unsubscribe(channel_id: str) -> None:
    """Unsubscribe from a channel."""
    async def command(app: App) -> None:
        app.require_account()
        if not app.subscriptions.supported:
            console.print("[yellow]This account cannot manage subscriptions.[/yellow]")
            return
        await app.subscriptions.unsubscribe(channel_id)
        if app.subscriptions.is_subscribing(channel_id):
            console.print(f"[red]Still subscribed to {channel_id}[/red]")
        else:
            console.print(f"[yellow]Unsubscribed from {channel_id}[/yellow]")

    run(command)


# =============================================================================
# Sponsor segments
# =============================================================================


@main.command("segments")
@click.argument("video_id")
@click.option("--category", "categories", multiple=True, type=click.Choice(SEGMENT_CATEGORIES))
def segments(video_id: str, categories: tuple[str, ...]) -> None:
    """Show SponsorBlock segments of a video."""
    async def command(app: App) -> None:
        await app.sponsor_block.load_segments(video_id, set(categories) if categories else None)
        found = app.sponsor_block.segments.value
        if not found:
            console.print("[dim]No segments[/dim]")
            return

        table = Table(show_header=True)
        table.add_column("Category")
        table.add_column("Start", justify="right")
        table.add_column("End", justify="right")
        for segment in found:
            table.add_row(
                category_description(segment.category) or segment.category,
                format_duration(segment.start),
                format_duration(segment.end),
            )
        console.print(table)

    run(command)


if __name__ == "__main__":
    main()
