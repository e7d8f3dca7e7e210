"""
Gift card business simulation with WebSocket streaming.
Hosts the engine on an asyncio loop and serves snapshots to a display client.
"""
import asyncio
import logging
import argparse

from .config import Difficulty, SimulationConfig
from .core.types import format_cents
from .simulation import SimulationEngine, SimulationRunner
from .streaming.snapshot_stream import BoundedSnapshotStream
from .streaming.websocket import AsyncWebSocketServer

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Gift Card Business Simulation with WebSocket Streaming",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Session
    parser.add_argument(
        '--difficulty', '-d',
        choices=[d.value for d in Difficulty],
        default=Difficulty.NORMAL.value,
        help='Difficulty preset (starting cash, margins, expirations, deadlines)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=42,
        help='Random seed; identical seeds and commands replay identically'
    )

    # Host loop
    parser.add_argument(
        '--tick-interval',
        type=float,
        default=0.5,
        help='Real seconds between engine ticks'
    )
    parser.add_argument(
        '--speed',
        type=float,
        default=1.0,
        help='Simulation speed multiplier (1.0 = 10 game minutes per 3 seconds)'
    )
    parser.add_argument(
        '--duration',
        type=float,
        default=None,
        help='Real seconds to run (default: until interrupted)'
    )
    parser.add_argument(
        '--stream-buffer-size',
        type=int,
        default=16,
        help='Snapshots buffered per subscriber before the oldest is dropped'
    )
    parser.add_argument(
        '--stats-interval',
        type=float,
        default=10.0,
        help='Seconds between statistics reports'
    )

    # WebSocket
    parser.add_argument(
        '--host',
        type=str,
        default='localhost',
        help='WebSocket server host'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=8765,
        help='WebSocket server port'
    )
    parser.add_argument(
        '--no-websocket',
        action='store_true',
        help='Run headless without the WebSocket server'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level'
    )

    return parser.parse_args(argv)


async def run_simulation(args):
    """
    Run the engine with optional WebSocket streaming until the duration
    elapses or the process is interrupted.
    """
    logger.info("=" * 80)
    logger.info("GIFT CARD SIMULATION - WEBSOCKET STREAMING")
    logger.info("=" * 80)

    config = SimulationConfig(difficulty=Difficulty(args.difficulty), seed=args.seed)
    engine = SimulationEngine(config)
    stream = BoundedSnapshotStream(maxsize=args.stream_buffer_size)
    runner = SimulationRunner(engine, stream, tick_interval=args.tick_interval, speed=args.speed)

    websocket_server = None
    if not args.no_websocket:
        websocket_server = AsyncWebSocketServer(stream, engine=engine, host=args.host, port=args.port)

    async def report_statistics():
        """Periodic statistics reporter"""
        while True:
            await asyncio.sleep(args.stats_interval)
            snapshot = engine.snapshot

            logger.info("=" * 80)
            logger.info(f"{snapshot.time.display()} ({snapshot.season})")
            logger.info(
                f"Cash: {format_cents(snapshot.player.cash)}  "
                f"Reputation: {snapshot.player.reputation_stars} stars"
            )
            logger.info(
                f"Orders: {len(snapshot.orders)} active, "
                f"{snapshot.analytics.orders_completed} completed, "
                f"{snapshot.analytics.orders_expired} expired"
            )

            stats = runner.get_stats()
            logger.info(
                f"Engine: {stats['engine']['ticks']} ticks, "
                f"{stats['engine']['daily_passes']} days, version {stats['version']}"
            )
            logger.info(
                f"Stream: {stats['stream']['messages_published']} published, "
                f"{stats['stream']['messages_dropped']} dropped"
            )
            if websocket_server:
                ws_stats = websocket_server.get_stats()
                logger.info(
                    f"WebSocket: {ws_stats['active_clients']} clients, "
                    f"{ws_stats['messages_sent']} messages sent"
                )
            logger.info("=" * 80)

    logger.info(f"Difficulty: {args.difficulty}, seed: {args.seed}")
    logger.info(f"Tick interval: {args.tick_interval}s, speed: {args.speed}x")
    if websocket_server:
        logger.info(f"Connect WebSocket clients to: ws://{args.host}:{args.port}")
    logger.info("Press Ctrl+C to stop")

    background = [asyncio.create_task(report_statistics())]
    if websocket_server:
        background.append(asyncio.create_task(websocket_server.start()))

    try:
        await runner.run(duration_seconds=args.duration)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Cleaning up...")
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        if websocket_server:
            await websocket_server.shutdown()

        final = engine.snapshot
        logger.info(
            f"Final: {final.time.display()}, cash {format_cents(final.player.cash)}, "
            f"profit {format_cents(final.analytics.total_profit)}"
        )


def main(argv=None):
    args = parse_arguments(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(run_simulation(args))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user...")


if __name__ == "__main__":
    main()
