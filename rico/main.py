"""Точка входа: разбор аргументов CLI и запуск пакетной операции."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from PIL import ImageColor

from rico.config import RicoConfig, load_config
from rico.controllers.batch_controller import BatchController, print_summary
from rico.errors import RicoError
from rico.services.transforms import BackgroundRemovalTransform, ConvertTransform, Transform
from rico.utils.log import get_logger, setup_logging
from rico.version import __version__

logger = get_logger("main")

EXIT_OK = 0
EXIT_FATAL = 2
TRANSPARENT = "transparent"


def parse_color(value: str) -> Optional[Tuple[int, int, int, int]]:
    """`transparent` -> None; иначе цвет Pillow (`#rrggbb`, `#rrggbbaa`, имя) -> RGBA."""
    if value.strip().lower() == TRANSPARENT:
        return None
    try:
        rgb = ImageColor.getrgb(value.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"неизвестный цвет: {value}") from exc
    if len(rgb) == 3:
        return (rgb[0], rgb[1], rgb[2], 255)
    return tuple(rgb)  # type: ignore[return-value]


def threshold_arg(value: str) -> int:
    try:
        t = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"ожидалось целое число, получено {value!r}") from exc
    if not 0 <= t <= 255:
        raise argparse.ArgumentTypeError(f"порог должен быть в диапазоне 0..255, получено {t}")
    return t


def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"ожидалось целое число, получено {value!r}") from exc
    if n < 1:
        raise argparse.ArgumentTypeError(f"ожидалось число >= 1, получено {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="rico",
        description="RICO: parallel batch image conversion and background removal.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-s", "--source", required=True, help="Source directory for input images.")
    common.add_argument(
        "-o", "--output",
        help="Output directory (optional, defaults to the source directory).",
    )
    common.add_argument("-w", "--workers", type=positive_int, help="Worker threads (default: CPU count).")
    common.add_argument("--report", help="Write a per-file CSV report to this path.")
    common.add_argument("--config", help="JSON config file (flags override it). Default: ./rico.json if present.")
    common.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every processed file.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")

    sub = p.add_subparsers(dest="command", required=True)

    conv = sub.add_parser("convert", parents=[common], help="Convert images to a different format.")
    conv.add_argument(
        "-f", "--format", default="png",
        choices=["png", "jpg", "jpeg", "bmp", "webp"],
        help="Target format (default: png).",
    )
    conv.add_argument(
        "--skip-existing", action="store_true",
        help="Skip files whose output already exists instead of overwriting it.",
    )

    rem = sub.add_parser("remove", parents=[common], help="Remove background from images.")
    rem.add_argument(
        "-b", "--background", nargs="?", const=TRANSPARENT, default=TRANSPARENT, type=parse_color,
        metavar="COLOR",
        help=(
            "Optional. The background is always removed; without COLOR (or with "
            "`-b` alone) it becomes transparent, with COLOR it is filled with that colour."
        ),
    )
    rem.add_argument(
        "-e", "--edge-threshold", type=threshold_arg, default=None,
        help="Edge detection threshold 0..255 (default: 30).",
    )
    return p


def _config_from_args(args: argparse.Namespace) -> RicoConfig:
    log_level = "DEBUG" if args.verbose else "WARNING" if args.quiet else None
    overrides = {
        "workers": args.workers,
        "show_progress": False if args.no_progress else None,
        "log_level": log_level,
        "edge_threshold": getattr(args, "edge_threshold", None),
    }
    return load_config(args.config, overrides=overrides)


def _build_transform(args: argparse.Namespace, cfg: RicoConfig, output_dir: Path) -> Transform:
    if args.command == "convert":
        return ConvertTransform(output_dir, args.format, skip_existing=args.skip_existing)
    return BackgroundRemovalTransform(
        output_dir, edge_threshold=cfg.edge_threshold, replacement=args.background
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Главная функция.

    Returns:
        int: 0, если запуск завершён (даже с ошибками отдельных файлов);
        2 при фатальной ошибке.
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    setup_logging("INFO")
    try:
        cfg = _config_from_args(args)
        setup_logging(cfg.log_level)

        source_dir = Path(args.source)
        output_dir = Path(args.output) if args.output else source_dir
        controller = BatchController(
            source_dir=source_dir,
            transform=_build_transform(args, cfg, output_dir),
            config=cfg,
            report_path=Path(args.report) if args.report else None,
        )
        report = controller.run()
    except (RicoError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return EXIT_FATAL

    print_summary(report, sys.stdout)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
