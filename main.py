"""
Точка входа: утилиты черчения для DXF-файлов.

Использование:
    python main.py measure <dxf_file> --handle HANDLE
    python main.py label <dxf_file> [--prefix P] [--height H] [--block NAME] [--layer L]
    python main.py array <dxf_file> --path-handle HANDLE --block NAME
                         [--count N | --spacing S] [--scale F] [--align | --no-align]
    python main.py init-config [PATH]

Пример:
    python main.py measure "plan.dxf" --handle 2F
    python main.py array "plan.dxf" --path-handle 2F --block LAMP --spacing 25 -o "plan_out.dxf"
    python main.py label "plan.dxf" --prefix LMP --height 2.5 --block LAMP
"""

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import List, Optional

# Обеспечить поддержку Unicode на Windows-консоли
if sys.stdout.encoding and sys.stdout.encoding.lower() not in ('utf-8', 'utf8'):
    sys.stdout.reconfigure(encoding='utf-8', errors='replace')
if sys.stderr.encoding and sys.stderr.encoding.lower() not in ('utf-8', 'utf8'):
    sys.stderr.reconfigure(encoding='utf-8', errors='replace')

from block_drafting.arraying.planner import CountMode, SpacingMode
from block_drafting.commands import (
    add_labels_to_blocks,
    array_blocks_on_path,
    measure_line,
)
from block_drafting.geometry.path import UnsupportedGeometry
from block_drafting.io.dxf_document import (
    BlockNotFound,
    DrawingDatabase,
    DrawingLoadError,
    EntityNotFound,
)
from block_drafting.logging_config import LogContext, setup_logging
from block_drafting.project_config import (
    CONFIG_FILENAME,
    ProjectConfig,
    create_sample_config,
    load_config,
    output_path_for,
)

logger = logging.getLogger("block_drafting.main")


# ---------------------------------------------------------------------------
# Команды
# ---------------------------------------------------------------------------

def run_measure(args: argparse.Namespace, config: ProjectConfig) -> List[str]:
    """Длина отрезка по его DXF-handle."""
    db = DrawingDatabase.open(args.dxf_file)
    result = measure_line(db, args.handle, precision=config.measure.precision)
    return [result.message]


def run_label(args: argparse.Namespace, config: ProjectConfig) -> List[str]:
    """Подписи над вставками блоков: <префикс>1, <префикс>2, ..."""
    db = DrawingDatabase.open(args.dxf_file)
    references = db.block_references(block_name=args.block, layer=args.layer)

    result = add_labels_to_blocks(
        db,
        references,
        prefix=args.prefix if args.prefix is not None else config.labels.prefix,
        text_height=args.height if args.height is not None else config.labels.text_height,
        offset_factor=config.labels.offset_factor,
        color=config.labels.color,
        style=config.labels.text_style,
    )
    db.save(_resolve_output(args, config))
    return result.messages


def run_array(args: argparse.Namespace, config: ProjectConfig) -> List[str]:
    """Массив блоков вдоль отрезка или полилинии."""
    if args.spacing is not None:
        policy = SpacingMode(args.spacing)
    else:
        count = args.count if args.count is not None else config.array.default_count
        policy = CountMode(count)

    align = args.align if args.align is not None else config.array.align_with_path
    scale = args.scale if args.scale is not None else config.array.scale
    layer = args.layer or config.array.layer

    db = DrawingDatabase.open(args.dxf_file)
    result = array_blocks_on_path(
        db,
        args.path_handle,
        args.block,
        policy,
        scale=scale,
        align_with_path=align,
        layer=layer,
    )
    db.save(_resolve_output(args, config))
    return result.messages


def run_init_config(args: argparse.Namespace, config: ProjectConfig) -> List[str]:
    """Создать пример конфигурационного файла."""
    path = create_sample_config(args.path)
    return [f"Sample configuration written to {path}"]


def _resolve_output(args: argparse.Namespace, config: ProjectConfig) -> Path:
    if args.output:
        return Path(args.output)
    return output_path_for(args.dxf_file, config)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _positive_float(value: str) -> float:
    number = float(value)
    if not number > 0 or not math.isfinite(number):
        raise argparse.ArgumentTypeError(f"значение должно быть > 0: {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"значение должно быть > 0: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Утилиты черчения для DXF: измерение, подписи, массив блоков вдоль пути.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help=f"Путь к конфигурационному файлу {CONFIG_FILENAME}.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Подробный лог (DEBUG).",
    )
    parser.add_argument(
        "--log-json",
        default=None,
        dest="log_json",
        help="Дополнительно писать лог в JSON-файл.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # measure
    p_measure = sub.add_parser("measure", help="Длина отрезка.")
    p_measure.add_argument("dxf_file", help="Путь к DXF-файлу.")
    p_measure.add_argument("--handle", required=True, help="Handle отрезка (LINE).")
    p_measure.set_defaults(handler=run_measure)

    # label
    p_label = sub.add_parser("label", help="Подписи над вставками блоков.")
    p_label.add_argument("dxf_file", help="Путь к DXF-файлу.")
    p_label.add_argument("--prefix", default=None, help="Префикс подписи, напр. 'BLK'.")
    p_label.add_argument(
        "--height", type=_positive_float, default=None,
        help="Высота текста (по умолчанию из конфигурации: 10.0).",
    )
    p_label.add_argument("--block", default=None, help="Только вставки этого блока.")
    p_label.add_argument("--layer", default=None, help="Только вставки на этом слое.")
    p_label.add_argument("--output", "-o", default=None, help="Путь к выходному DXF-файлу.")
    p_label.set_defaults(handler=run_label)

    # array
    p_array = sub.add_parser("array", help="Массив блоков вдоль отрезка или полилинии.")
    p_array.add_argument("dxf_file", help="Путь к DXF-файлу.")
    p_array.add_argument(
        "--path-handle", required=True, dest="path_handle",
        help="Handle пути (LINE, LWPOLYLINE, POLYLINE).",
    )
    p_array.add_argument("--block", required=True, help="Имя блока.")
    mode = p_array.add_mutually_exclusive_group()
    mode.add_argument(
        "--count", type=_positive_int, default=None,
        help="Количество блоков (по умолчанию из конфигурации: 5).",
    )
    mode.add_argument(
        "--spacing", type=_positive_float, default=None,
        help="Шаг между блоками.",
    )
    p_array.add_argument(
        "--scale", type=_positive_float, default=None,
        help="Масштаб блока (по умолчанию 1.0).",
    )
    p_array.add_argument(
        "--align", dest="align", action="store_true", default=None,
        help="Поворачивать блоки по направлению пути.",
    )
    p_array.add_argument(
        "--no-align", dest="align", action="store_false", default=None,
        help="Не поворачивать блоки.",
    )
    p_array.add_argument("--layer", default=None, help="Слой для вставок.")
    p_array.add_argument("--output", "-o", default=None, help="Путь к выходному DXF-файлу.")
    p_array.set_defaults(handler=run_array)

    # init-config
    p_init = sub.add_parser("init-config", help="Создать пример конфигурации.")
    p_init.add_argument("path", nargs="?", default=CONFIG_FILENAME)
    p_init.set_defaults(handler=run_init_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_file=args.log_json,
    )

    drawing = getattr(args, "dxf_file", None)
    config = load_config(drawing_path=drawing, explicit_config=args.config)

    try:
        with LogContext(command=args.command):
            messages = args.handler(args, config)
    except BlockNotFound as exc:
        logger.error("%s", exc)
        return 1
    except (DrawingLoadError, EntityNotFound, UnsupportedGeometry) as exc:
        logger.error("Ошибка: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("Неверные параметры: %s", exc)
        return 1
    except Exception as exc:
        logger.critical("Неожиданная ошибка: %s", exc, exc_info=True)
        return 2

    for message in messages:
        print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
