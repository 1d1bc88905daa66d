"""Render the Mandelbrot heat map and save it as a PNG.

Example caller of the render core: obtains a host buffer and a row stride,
calls ``render``, then persists the pixels. Everything outside ``render``
(argument parsing, buffer allocation, encoding) lives here, not in the core.

CLI:
    python scripts/render_png.py --width 1920 --height 1080 --output out/mandelbrot.png
    python scripts/render_png.py --width 640 --height 480 --stride 2816 \\
                                 --config configs/renderer.v1.yaml -v

Exit codes:
    0  success
    1  invalid arguments or config
    70 device error (error_policy="raise"; "abort" exits with the same code)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mandelbrot_gpu.renderer import DeviceError, render
from mandelbrot_gpu.renderer.kernel import MAX_ITERATIONS
from mandelbrot_gpu.renderer.orchestrator import EXIT_DEVICE_ERROR
from mandelbrot_gpu.utils import fs, hashing, validators
from mandelbrot_gpu.utils.logging_config import install_excepthook, setup_logging, shutdown

logger = logging.getLogger(__name__)


def main() -> int:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Render a false-color Mandelbrot image to PNG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=1024, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=768, help="Image height in pixels")
    parser.add_argument(
        "--stride",
        type=int,
        default=None,
        help="Host row stride in bytes (default: width * 4)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=MAX_ITERATIONS,
        help=f"Forwarded to render(); the cap is fixed at {MAX_ITERATIONS}",
    )
    parser.add_argument("--config", type=Path, default=None, help="renderer.v1 YAML config")
    parser.add_argument("--output", type=Path, default=Path("mandelbrot.png"), help="Output PNG path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    try:
        cfg = (
            validators.load_renderer_config(args.config)
            if args.config is not None
            else validators.RendererConfigV1()
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    log_kwargs = cfg.logging.setup_kwargs()
    if args.verbose:
        log_kwargs['log_level'] = "DEBUG"
    setup_logging(**log_kwargs, quiet_libs=["PIL"], context={"app": "render"})
    install_excepthook()

    stride = args.stride if args.stride is not None else args.width * 4
    buffer = bytearray(args.height * stride) if args.height > 0 and stride > 0 else bytearray()

    try:
        render(buffer, args.width, args.height, stride, args.iterations, config=cfg)
    except (ValueError, TypeError) as e:
        logger.error(f"Invalid image request: {e}")
        return 1
    except DeviceError:
        # Details were already logged by the orchestrator
        return EXIT_DEVICE_ERROR

    fs.atomic_save_rgba(buffer, args.width, args.height, stride, args.output)
    digest = hashing.sha256_pixels(buffer, args.width, args.height, stride)
    logger.info(f"Saved {args.width}×{args.height} render to {args.output} (sha256={digest[:16]})")

    shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
