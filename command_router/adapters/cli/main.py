"""CLI JSON-lines adapter — routes text from argv/stdin, prints the outcome as JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from command_router import create_router
from command_router.engine.models import RouteContext


async def run_cli(
    text: str,
    context: RouteContext,
    dispatch: bool = False,
) -> None:
    router = create_router()
    await router.start()
    try:
        result = await router.route_detailed(text, context)
        print(json.dumps(result.model_dump(mode="json"), default=str), flush=True)
        if dispatch and result.is_command:
            outcome = await router.dispatch(result.text, context)
            print(json.dumps(outcome.model_dump(mode="json"), default=str), flush=True)
    finally:
        await router.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="command-router", description="Route a chat message to a command.")
    parser.add_argument("text", nargs="*", help="message text (read from stdin when omitted)")
    parser.add_argument("--repo", help="active repo for auto-context")
    parser.add_argument("--company", help="active company code for auto-context")
    parser.add_argument("--conversation", default="cli-default", help="conversation id")
    parser.add_argument("--dispatch", action="store_true", help="also dispatch the routed command")
    args = parser.parse_args(argv)

    if args.text:
        text = " ".join(args.text)
    else:
        raw = sys.stdin.read().strip()
        if not raw:
            print("Usage: command-router <text>  OR  echo '{\"text\":\"...\"}' | command-router", file=sys.stderr)
            sys.exit(1)
        try:
            data = json.loads(raw)
            text = data.get("text", raw) if isinstance(data, dict) else raw
        except json.JSONDecodeError:
            text = raw

    context = RouteContext(
        active_repo=args.repo,
        active_company=args.company,
        conversation_id=args.conversation,
    )
    asyncio.run(run_cli(text, context, dispatch=args.dispatch))


if __name__ == "__main__":
    main()
