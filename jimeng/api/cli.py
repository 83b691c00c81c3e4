"""
Command-line entrypoint for the Jimeng image client.

Commands:
- `serve`: run the HTTP adapter (`jimeng.api.http_api:app`) with uvicorn.
- `check`: validate configuration and print masked credentials.
- `generate`: submit a task, wait for completion, print the result.

Configuration:
- Credentials and defaults come from `JimengConfig` (environment / `.env`).
- `--access-key`, `--secret-key` and `--endpoint` override the environment.

Error handling strategy:
- Missing credentials exit with status 1 and a message on stderr.
- Invalid settings (`ConfigurationError`) exit with status 1.
- Client errors during `generate` are printed and exit with status 1.
"""

import argparse
import asyncio
import dataclasses
import logging
import sys

from jimeng.core.config import JimengConfig
from jimeng.core.errors import ConfigurationError, JimengError
from jimeng.core.gate import POLICIES
from jimeng.image.service import ImageService


def build_config(args) -> JimengConfig:
    """Apply command-line overrides on top of environment configuration."""
    config = JimengConfig()
    overrides = {}
    if args.access_key:
        overrides["access_key"] = args.access_key
    if args.secret_key:
        overrides["secret_key"] = args.secret_key
    if args.endpoint:
        overrides["endpoint"] = args.endpoint
    if getattr(args, "policy", None):
        overrides["concurrency_policy"] = args.policy
    return dataclasses.replace(config, **overrides) if overrides else config


def require_credentials(config: JimengConfig) -> None:
    if not config.access_key:
        print(
            "Error: access key is required. Use --access-key or set JIMENG_ACCESS_KEY.",
            file=sys.stderr,
        )
        sys.exit(1)
    if not config.secret_key:
        print(
            "Error: secret key is required. Use --secret-key or set JIMENG_SECRET_KEY.",
            file=sys.stderr,
        )
        sys.exit(1)


def cmd_serve(args) -> None:
    import uvicorn

    from jimeng.api import http_api

    config = build_config(args)
    require_credentials(config)
    http_api.set_service(ImageService.from_config(config))
    print(f"Starting Jimeng HTTP API on {args.host}:{args.port}", file=sys.stderr)
    uvicorn.run(http_api.app, host=args.host, port=args.port)


def cmd_check(args) -> None:
    config = build_config(args)
    require_credentials(config)
    print("Configuration loaded successfully")
    for key, value in config.masked().items():
        print(f"  {key}: {value}")


async def _generate(config: JimengConfig, args) -> str:
    service = ImageService.from_config(config)
    try:
        result = await service.generate_and_wait(
            args.prompt,
            image_urls=args.image_url or None,
            scale=args.scale,
            seed=args.seed,
            width=args.width,
            height=args.height,
            max_wait_time=args.max_wait,
        )
    finally:
        await service.aclose()
    return result.text


def cmd_generate(args) -> None:
    config = build_config(args)
    require_credentials(config)
    try:
        text = asyncio.run(_generate(config, args))
    except JimengError as exc:
        print(f"Generation failed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jimeng",
        description="Client for the Jimeng image generation API",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-k", "--access-key", default=None, help="Jimeng access key")
    common.add_argument("-s", "--secret-key", default=None, help="Jimeng secret key")
    common.add_argument("-e", "--endpoint", default=None, help="API endpoint (optional)")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", parents=[common], help="Start the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--policy", choices=POLICIES, default=None, help="Concurrency policy")
    serve.set_defaults(func=cmd_serve)

    check = sub.add_parser("check", parents=[common], help="Validate configuration")
    check.set_defaults(func=cmd_check)

    generate = sub.add_parser("generate", parents=[common], help="Generate an image and wait")
    generate.add_argument("prompt")
    generate.add_argument("--image-url", action="append", default=[], help="Reference image URL (image-to-image)")
    generate.add_argument("--scale", type=float, default=None)
    generate.add_argument("--seed", type=int, default=None)
    generate.add_argument("--width", type=int, default=None)
    generate.add_argument("--height", type=int, default=None)
    generate.add_argument("--max-wait", type=float, default=None, help="Polling budget in seconds")
    generate.set_defaults(func=cmd_generate)

    return parser


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except ConfigurationError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
