"""Download a Whisper model ahead of time.

Usage:
    voicetui-download-model              # downloads the default model (small)
    voicetui-download-model base.en
    voicetui-download-model --list
"""

import sys
import argparse
import logging
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .exceptions import ConfigError, DownloadError
from .models.events import DownloadProgress
from .transcription.models import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_MODELS_DIR, ModelAssetStore

logger = logging.getLogger(__name__)

console = Console()


def print_models(store: ModelAssetStore) -> None:
    """Print the registered models with their size and local presence."""
    table = Table(title="Available Whisper Models")
    table.add_column("Model", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Description")
    table.add_column("Downloaded", justify="center")

    for descriptor, present in store.list_models():
        name = f"{descriptor.name} (default)" if descriptor.name == DEFAULT_MODEL else descriptor.name
        table.add_row(name, descriptor.size_label, descriptor.label, "[green]✓[/green]" if present else "")

    console.print(table)
    console.print(f"[dim]Models directory: {store.models_dir}[/dim]")


def download_model(store: ModelAssetStore, model_name: str, force: bool = False) -> bool:
    """Download one model with a progress bar.

    Returns:
        True if the model is present afterwards
    """
    try:
        model = store.descriptor(model_name)
    except ConfigError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        print_models(store)
        return False

    if store.is_present(model_name) and not force:
        console.print(f"[green]✓[/green] Model '{model_name}' already downloaded: {model.local_path}")
        return True

    console.print(f"[cyan]Downloading Whisper {model_name} model ({model.size_label})...[/cyan]")
    console.print(f"[dim]{model.download_url}[/dim]")

    with Progress(
        "[progress.description]{task.description}",
        BarColumn(bar_width=40),
        "[progress.percentage]{task.percentage:>3.0f}%",
        "•",
        DownloadColumn(),
        "•",
        TransferSpeedColumn(),
        "•",
        TimeRemainingColumn(),
        console=console,
        transient=False,
    ) as progress:
        task_id = progress.add_task(model_name, total=None)

        def on_progress(p: DownloadProgress) -> None:
            progress.update(task_id, completed=p.downloaded_bytes, total=p.total_bytes or None)

        try:
            path = store.download(model_name, on_progress, force=force)
        except DownloadError as e:
            logger.error(f"Model download failed: {e}")
            console.print(f"[bold red]✗[/bold red] Error downloading model: {e}")
            return False

    console.print(f"[green]✓[/green] Successfully downloaded {model_name} to {path}")
    return True


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Download Whisper models for voicetui",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "model",
        nargs="?",
        default=DEFAULT_MODEL,
        help=f"Model to download (default: {DEFAULT_MODEL})",
    )

    parser.add_argument(
        "--models-dir",
        type=str,
        default=str(DEFAULT_MODELS_DIR),
        help=f"Models directory (default: {DEFAULT_MODELS_DIR})",
    )

    parser.add_argument(
        "--base-url",
        type=str,
        default=DEFAULT_BASE_URL,
        help="URL prefix the ggml model files are fetched from",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List available models and exit",
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Download again even if the model is already present",
    )

    args = parser.parse_args(argv)

    store = ModelAssetStore(models_dir=args.models_dir, base_url=args.base_url)

    if args.list:
        print_models(store)
        return

    try:
        success = download_model(store, args.model, force=args.force)
    except KeyboardInterrupt:
        console.print("\n[yellow]Download cancelled[/yellow]")
        success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
