#!/usr/bin/env python3
"""
telemorph: Convert animated images (gif, webp, ...) to Telegram WEBM stickers/emoji.

Argument parsing and validation, console output and output-path defaulting live
here; the conversion itself is done by ``StickerConverter``.
"""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config import (
    TELEGRAM_MAX_DURATION,
    TELEGRAM_MAX_FPS,
    TELEGRAM_MAX_SIZE_KB,
    ConversionProfile,
    DurationPolicy,
    TargetKind,
    app_config,
)
from ..core.exceptions import ConversionCancelled, TelemorphError
from ..output.logger import SimpleLogger
from ..processing.pipeline import StickerConverter
from ..tools.check import check_tools

console = Console()
err_console = Console(stderr=True)

EXIT_CANCELLED = 130


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    p = argparse.ArgumentParser(
        prog="telemorph",
        description="Convert animated images to Telegram WEBM stickers/emoji.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("input", type=Path, help="Input animated file (gif, webp, etc.)")
    p.add_argument("-o", "--output", type=Path, help="Output .webm path. Defaults to <input>_<mode>.webm")
    p.add_argument("-e", "--emoji", action="store_true", help="Convert to Telegram custom emoji (100x100)")
    p.add_argument("-s", "--sticker", action="store_true", help="Convert to Telegram video sticker (512x512)")
    p.add_argument(
        "-c", "--crf", type=int, default=app_config.encode.default_crf,
        help="VP9 CRF (higher = smaller file, lower quality)",
    )
    p.add_argument("-f", "--fps", type=int, default=TELEGRAM_MAX_FPS, help="Max FPS for output video")
    p.add_argument("-d", "--duration", type=float, default=TELEGRAM_MAX_DURATION, help="Max output duration in seconds")
    p.add_argument("--ffmpeg", default=app_config.tools.ffmpeg_path, help="Path to ffmpeg executable")
    p.add_argument("--magick", default=app_config.tools.magick_path, help="Path to ImageMagick 'magick' executable")
    p.add_argument(
        "--fit-duration", action="store_true",
        help="Scale frame delays proportionally to fit the max duration instead of cutting",
    )
    p.add_argument(
        "--variable-height", action="store_true",
        help="Stickers only: longer side 512px, other side scaled proportionally instead of a 512x512 canvas",
    )
    p.add_argument("-t", "--threads", type=int, default=app_config.encode.default_threads, help="ffmpeg thread count")
    p.add_argument(
        "--row-mt", action=argparse.BooleanOptionalAction, default=app_config.encode.row_multithreading,
        help="Enable ffmpeg row-based multithreading",
    )
    p.add_argument("--log-file", type=Path, help="Append diagnostics to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Show executed commands and debug diagnostics")
    p.add_argument("--check-tools", action="store_true", help="Verify external tools and exit")
    return p.parse_args(argv)


def validate_args(args: argparse.Namespace) -> tuple[list[str], list[str]]:
    """Return (errors, warnings) for the parsed arguments.

    Resolves the sticker/emoji choice in place when neither flag was given.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not args.sticker and not args.emoji:
        args.sticker = True
    elif args.sticker and args.emoji:
        errors.append("Choose either --emoji or --sticker, not both.")

    if args.emoji and args.variable_height:
        warnings.append("--variable-height is only used for stickers and ignored for emoji.")

    if not 0 <= args.crf <= 51:
        errors.append("CRF must be between 0 and 51.")

    if args.fps <= 0:
        errors.append("FPS must be positive.")
    elif args.fps > TELEGRAM_MAX_FPS:
        warnings.append(f"To upload it to Telegram, FPS must be <= {TELEGRAM_MAX_FPS}.")

    if args.duration <= 0:
        errors.append("Duration must be positive.")
    elif args.duration > TELEGRAM_MAX_DURATION:
        warnings.append(f"To upload it to Telegram, duration must be <= {TELEGRAM_MAX_DURATION:g}.")

    cpus = os.cpu_count() or 1
    if args.threads <= 0:
        errors.append("Threads must be positive.")
    elif args.threads > cpus:
        errors.append(f"Threads cannot exceed the number of available processors ({cpus}).")

    if not args.input.is_file():
        errors.append(f"Input file not found: {args.input.resolve()}")

    return errors, warnings


def build_profile(args: argparse.Namespace) -> ConversionProfile:
    """Create the ConversionProfile selected by the arguments."""
    if args.emoji:
        return ConversionProfile.emoji(args.fps, args.duration)
    return ConversionProfile.sticker(args.fps, args.duration, args.variable_height)


def default_output_path(input_path: Path, kind: TargetKind) -> Path:
    """<input dir>/<input stem>_<kind>.webm"""
    return input_path.with_name(f"{input_path.stem}_{kind.value}.webm")


def install_signal_handlers(cancel_event: threading.Event) -> None:
    """Handle Ctrl+C by requesting cancellation of the running tool."""

    def handler(signum, frame):
        if not cancel_event.is_set():
            err_console.print("\n[yellow]Ctrl+C received. Cancelling conversion...[/]")
        cancel_event.set()

    signal.signal(signal.SIGINT, handler)


def create_run_header(args: argparse.Namespace, profile: ConversionProfile, output: Path) -> Panel:
    """Build the header panel describing the run configuration."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Input:", escape(str(args.input.resolve())))
    table.add_row("Output:", escape(str(output)))
    table.add_row(
        "Profile:",
        f"{profile.width}x{profile.height}, max {profile.max_fps} fps, max {profile.max_duration:g}s",
    )
    table.add_row("CRF:", str(args.crf))
    table.add_row("ffmpeg:", escape(args.ffmpeg))
    table.add_row("magick:", escape(args.magick))
    table.add_row("Fit duration:", "scale to max duration" if args.fit_duration else "cut at max duration")
    table.add_row("Threads:", str(args.threads))
    table.add_row("Row MT:", "enabled" if args.row_mt else "disabled")
    if profile.kind == TargetKind.STICKER:
        table.add_row("Variable H:", "enabled" if profile.variable_height else "disabled")
    title = f"[bold cyan]Telemorph {profile.kind.value} conversion[/bold cyan]"
    return Panel(table, title=title, border_style="cyan", title_align="left")


def report_output_size(output: Path) -> None:
    """Print the output size, warning when it exceeds the Telegram limit."""
    size_kb = output.stat().st_size / 1024.0
    if size_kb <= TELEGRAM_MAX_SIZE_KB:
        console.print(f"[dim]Output size:[/] [green]{size_kb:.1f} KB[/]")
        return
    console.print(f"[dim]Output size:[/] [yellow]{size_kb:.1f} KB[/]")
    console.print(
        f"[yellow]Warning: File is larger than {TELEGRAM_MAX_SIZE_KB:g} KB. "
        "Telegram may reject it. Try higher --crf (e.g. 42).[/]"
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)

    if args.check_tools:
        ok, probs = check_tools(args.ffmpeg, args.magick)
        if ok:
            console.print("[bold green]Tools OK:[/] ffmpeg, magick")
            return 0
        for p in probs:
            err_console.print(f"[bold red]Missing:[/] {escape(p)}")
        return 1

    neither_mode = not args.sticker and not args.emoji
    errors, warnings = validate_args(args)
    if errors:
        for e in errors:
            err_console.print(f"[bold red]Error:[/] {escape(e)}")
        return 1
    if neither_mode:
        console.print("[dim]Neither --sticker nor --emoji specified. Defaulting to --sticker mode.[/]")
    for w in warnings:
        console.print(f"[yellow]{escape(w)}[/]")

    tools_ok, probs = check_tools(args.ffmpeg, args.magick)
    if not tools_ok:
        for p in probs:
            err_console.print(f"[bold red]Missing:[/] {escape(p)}")
        return 1

    profile = build_profile(args)
    input_path = args.input.resolve()
    output = args.output or default_output_path(input_path, profile.kind)

    console.print(create_run_header(args, profile, output))

    logger = SimpleLogger(args.log_file, verbose=args.verbose)
    converter = StickerConverter(
        args.ffmpeg,
        args.magick,
        threads=args.threads,
        row_mt=args.row_mt,
        min_frame_duration=app_config.schedule.min_frame_duration,
        mismatch_warn_threshold=app_config.schedule.mismatch_warn_threshold,
        logger=logger,
    )

    cancel_event = threading.Event()
    install_signal_handlers(cancel_event)
    policy = DurationPolicy.FIT if args.fit_duration else DurationPolicy.CUT

    try:
        converter.convert(input_path, output, profile, args.crf, overwrite=True, policy=policy, cancel_event=cancel_event)
    except ConversionCancelled:
        err_console.print("[yellow]Cancelled.[/]")
        return EXIT_CANCELLED
    except (TelemorphError, OSError) as ex:
        err_console.print("[bold red]Conversion failed:[/]")
        err_console.print(str(ex), markup=False, highlight=False)
        return 1

    console.print("[bold green]Conversion complete.[/]")
    report_output_size(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
