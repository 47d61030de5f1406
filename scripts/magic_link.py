"""Run a magic-link action from the command line.

Operator tool for support cases: issue a link for a respondent, check what
a token grants, or consume one. Uses the direct database connection and
always prints the token and URL on generate.

Usage:
    python -m scripts.magic_link generate '{"email": "alice@example.com", "surveyId": "<uuid>"}'
    python -m scripts.magic_link validate '{"token": "<token>"}'
    python -m scripts.magic_link use '{"token": "<token>"}'

Exit codes: 0 success, 1 rejected request (4xx), 2 server-side failure (5xx).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s", stream=sys.stderr)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_FAILED = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    from app.services.magic_link import ACTIONS

    parser = argparse.ArgumentParser(prog="python -m scripts.magic_link", description=__doc__.split("\n")[0])
    parser.add_argument("action", choices=ACTIONS)
    parser.add_argument("payload", nargs="?", default="{}", help="JSON object with the action's fields")
    return parser.parse_args(argv)


def exit_code_for(status_code: int) -> int:
    if status_code < 400:
        return EXIT_OK
    if status_code < 500:
        return EXIT_REJECTED
    return EXIT_FAILED


async def run(action: str, payload: dict[str, Any]) -> int:
    from app.core.database import direct_session_scope
    from app.services.magic_link import RequestContext, magic_link_service

    pending: list[tuple[Callable[..., Awaitable[Any]], tuple[Any, ...]]] = []

    def schedule(func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        pending.append((func, args))

    async with direct_session_scope() as db:
        result = await magic_link_service.handle(
            db,
            action,
            payload,
            context=RequestContext(user_agent="scripts.magic_link"),
            schedule_delivery=schedule,
            include_link=True,
        )

    # Transaction is committed; delivery failures are logged, not fatal
    for func, args in pending:
        await func(*args)

    print(json.dumps(result.to_body(), indent=2))
    return exit_code_for(result.status_code)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as e:
        logger.error(f"Payload is not valid JSON: {e}")
        print(json.dumps({"success": False, "error": "Invalid request", "code": "invalid_request"}))
        return EXIT_REJECTED
    if not isinstance(payload, dict):
        print(json.dumps({"success": False, "error": "Invalid request", "code": "invalid_request"}))
        return EXIT_REJECTED

    return asyncio.run(run(args.action, payload))


if __name__ == "__main__":
    sys.exit(main())
