import argparse
import os

import uvicorn


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Abacus drill player server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--api-base-url",
        default=None,
        help="Backend API root (overrides API_BASE_URL)",
    )
    parser.add_argument(
        "--silent",
        action="store_true",
        help="Disable spoken narration",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if args.api_base_url:
        os.environ["API_BASE_URL"] = args.api_base_url
    if args.silent:
        os.environ["NARRATION_BACKEND"] = "silent"

    uvicorn.run(
        "player.app:app",
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
