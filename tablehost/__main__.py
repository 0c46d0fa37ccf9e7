import argparse
import asyncio
import logging

from holdem.models import MAX_SEATS, TableConfig

from .server import HostServer


def main() -> None:
    # CLI doubles as documentation for the table defaults.
    parser = argparse.ArgumentParser(description="Multiplayer hold'em room server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--seats", type=int, default=MAX_SEATS, help=f"Seats per room (2-{MAX_SEATS})")
    parser.add_argument("--starting-stack", type=int, default=2_000)
    parser.add_argument("--sb", type=int, default=10)
    parser.add_argument("--bb", type=int, default=20)
    parser.add_argument(
        "--reveal-delay-ms",
        type=int,
        default=3_000,
        help="Pause between the last betting round and the payout",
    )
    parser.add_argument(
        "--next-hand-delay-ms",
        type=int,
        default=3_500,
        help="Pause between the payout and the next deal",
    )
    parser.add_argument("--bot-delay-ms", type=int, default=800, help="Minimum bot thinking time")
    parser.add_argument("--bot-jitter-ms", type=int, default=600, help="Random extra bot thinking time")
    parser.add_argument("--equity-trials", type=int, default=500, help="Monte Carlo runs for spectator odds")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = TableConfig(
        seats=args.seats,
        starting_stack=args.starting_stack,
        sb=args.sb,
        bb=args.bb,
        reveal_delay_ms=args.reveal_delay_ms,
        next_hand_delay_ms=args.next_hand_delay_ms,
        bot_delay_ms=args.bot_delay_ms,
        bot_jitter_ms=args.bot_jitter_ms,
        equity_trials=args.equity_trials,
    )

    server = HostServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
