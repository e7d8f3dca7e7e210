"""
Simulation orchestrator.

SimulationEngine is the single owner of game state and is purely
synchronous; SimulationRunner hosts it on an asyncio loop and publishes
each committed snapshot.
"""
import asyncio
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Deque, Dict, List, Optional, Tuple
import logging

import numpy as np

from .config import SimulationConfig
from .core.achievements import AchievementTracker, Unlock
from .core.analytics import Analytics
from .core.clock import Clock, Elapsed
from .core.commands import (
    AcceptOrder, Command, CommandResult, DeclineOrder, Liquidate,
    Pause, Purchase, Resume, command_name
)
from .core.errors import SimulationError
from .core.inventory import Inventory
from .core.market import Market
from .core.market_conditions import MarketConditions
from .core.order_book import OrderBook
from .core.order_generator import GeneratorConfig, OrderGenerator
from .core.player import Player
from .core.reputation import Reputation
from .core.snapshot import PlayerView, SimulationSnapshot
from .core.types import CENTS_PER_UNIT, GameTime, format_cents
from .streaming.activity_log import ActivityLog
from .streaming.snapshot_stream import BoundedSnapshotStream

logger = logging.getLogger(__name__)

STATE_FORMAT = 1


@dataclass
class EngineStats:
    """Engine metrics"""
    ticks: int = 0
    daily_passes: int = 0
    commands_accepted: int = 0
    commands_rejected: int = 0
    snapshots_committed: int = 0
    orders_generated: int = 0


class SimulationEngine:
    """
    Deterministic tick-driven state machine.

    All mutation happens in tick() or command handling, on one thread of
    control. Readers use `snapshot`, which is replaced atomically on
    each commit and never observed mid-update.
    """

    def __init__(
        self,
        config: SimulationConfig = SimulationConfig(),
        market: Optional[Market] = None,
        open_session: bool = True
    ):
        self.config = config
        preset = config.preset

        # Sole source of randomness
        self.rng = np.random.default_rng(config.seed)

        self.clock = Clock(
            start=GameTime(day=1, minute_of_day=config.start_minute_of_day),
            sim_minutes_per_step=config.sim_minutes_per_step,
            real_seconds_per_step=config.real_seconds_per_step
        )
        self.market = market or Market()
        self.conditions = MarketConditions()
        self.inventory = Inventory()
        self.order_book = OrderBook(closed_history=config.closed_order_history)
        self.player = Player(preset.starting_cash, Reputation())
        self.generator = OrderGenerator(GeneratorConfig(
            profit_margin_band=preset.profit_margin_band,
            deadline_range_days=preset.order_deadline_range_days,
            base_arrival_probability=config.base_arrival_probability,
            max_orders_per_day=config.max_orders_per_day
        ))
        self.analytics = Analytics()
        self.achievements = AchievementTracker()
        self.activity = ActivityLog(maxsize=config.activity_log_size)

        self.next_order_id = 1
        self.stats = EngineStats()

        self._pending: Deque[Tuple[Command, Future]] = deque()
        self._in_daily_pass = False
        self._version = 0
        self._snapshot: Optional[SimulationSnapshot] = None
        self._unlock_messages: List[str] = []

        self._handlers: Dict[type, Callable[[Command], str]] = {
            Purchase: self._purchase,
            AcceptOrder: self._accept_order,
            DeclineOrder: self._decline_order,
            Pause: self._pause,
            Resume: self._resume,
            Liquidate: self._liquidate,
        }

        if open_session:
            self._open_session()
            self._commit()

    # ========================================================================
    # READ SIDE
    # ========================================================================

    @property
    def snapshot(self) -> SimulationSnapshot:
        """Latest committed snapshot"""
        return self._snapshot

    @property
    def now(self) -> GameTime:
        return self.clock.now

    @property
    def pending_commands(self) -> int:
        return len(self._pending)

    def purchase_price(self, retailer: str, denomination: int, quantity: int = 1) -> int:
        """Current wholesale unit cost including conditions and reputation"""
        return self.market.price(retailer, denomination, quantity, self._price_adjustment(retailer))

    # ========================================================================
    # COMMANDS
    # ========================================================================

    def submit(self, command: Command) -> 'Future[CommandResult]':
        """
        Queue a command for the start of the next tick. The returned
        future resolves with its CommandResult once that tick commits.
        """
        future: Future = Future()
        self._pending.append((command, future))
        return future

    def execute(self, command: Command) -> CommandResult:
        """Apply a command now and commit a snapshot"""
        if self._in_daily_pass:
            raise RuntimeError("Commands cannot run during a daily pass")
        result = self._apply(command)
        snapshot = self._commit()
        return replace(result, version=snapshot.version)

    def _apply(self, command: Command) -> CommandResult:
        name = command_name(command)
        try:
            message = self._handlers[type(command)](command)
        except SimulationError as e:
            self.stats.commands_rejected += 1
            logger.warning(f"Command {name} rejected: {e}")
            self._log(f"Rejected {name}: {e}")
            return CommandResult(command, accepted=False, message=str(e), error=e)

        self.stats.commands_accepted += 1
        self._log(message)
        self._flush_unlocks()
        return CommandResult(command, accepted=True, message=message)

    def _purchase(self, command: Purchase) -> str:
        day = self.clock.now.day
        unit_cost = self.purchase_price(command.retailer, command.denomination, command.quantity)
        total = unit_cost * command.quantity
        label = f"{command.quantity}x {command.retailer} ${command.denomination} for {format_cents(total)}"
        price_multiplier = self.conditions.price_multiplier(command.retailer)

        # Must precede the expiration draw: rejected purchases draw nothing
        self.player.debit(total)

        lo, hi = self.config.preset.expiration_range_days
        expiration_day = day + int(self.rng.integers(lo, hi + 1))
        self.inventory.add_lot(
            retailer=command.retailer,
            denomination=command.denomination,
            quantity=command.quantity,
            unit_cost=unit_cost,
            purchase_day=day,
            expiration_day=expiration_day
        )
        self.analytics.record_purchase(total)

        self._grant(self.achievements.record_purchase(price_multiplier, day))
        self._grant(self.achievements.check_inventory(self.inventory, day))

        return f"Purchased {label} (expires day {expiration_day})"

    def _accept_order(self, command: AcceptOrder) -> str:
        fulfillment = self.order_book.accept_and_fulfill(
            command.order_id, self.inventory, self.player, self.clock.now.day
        )
        order = fulfillment.order
        self.analytics.record_sale(fulfillment.revenue, fulfillment.cost_basis, order.card_count)

        day = self.clock.now.day
        self._grant(self.achievements.record_fulfillment(fulfillment, self.conditions.season, day))
        self._grant(self.achievements.check_orders(
            self.analytics.orders_completed, self.player.reputation.stars, day
        ))
        self._grant(self.achievements.check_cash(self.player.cash, day))

        return (
            f"Fulfilled order #{order.order_id} for {order.customer.name}: "
            f"+{format_cents(fulfillment.revenue)} "
            f"(profit {format_cents(fulfillment.profit)}, reputation {fulfillment.reputation_delta:+d})"
        )

    def _decline_order(self, command: DeclineOrder) -> str:
        order = self.order_book.decline(command.order_id, self.clock.now.day)
        self.analytics.record_declined_order()
        return f"Declined order #{order.order_id} from {order.customer.name}"

    def _pause(self, command: Pause) -> str:
        if self.clock.pause():
            return "Simulation paused"
        return "Simulation already paused"

    def _resume(self, command: Resume) -> str:
        if self.clock.resume():
            return "Simulation resumed"
        return "Simulation already running"

    def _liquidate(self, command: Liquidate) -> str:
        face = command.denomination * CENTS_PER_UNIT * command.quantity
        proceeds = int(
            (Decimal(face) * Decimal(repr(self.config.liquidation_fraction)))
            .quantize(Decimal(1), rounding=ROUND_HALF_UP)
        )
        consumed = self.inventory.consume(command.retailer, command.denomination, command.quantity)
        self.player.credit(proceeds)
        self.analytics.record_liquidation(proceeds, command.quantity)
        self._grant(self.achievements.check_cash(self.player.cash, self.clock.now.day))

        cost = sum(lot.total_cost for lot in consumed)
        return (
            f"Liquidated {command.quantity}x {command.retailer} ${command.denomination} "
            f"for {format_cents(proceeds)} (cost {format_cents(cost)})"
        )

    # ========================================================================
    # TICK
    # ========================================================================

    def tick(self, elapsed: Elapsed) -> SimulationSnapshot:
        """
        Drain queued commands, advance the clock, run one daily pass per
        crossed day boundary, then commit and return a new snapshot.
        """
        drained: List[Tuple[Future, CommandResult]] = []
        while self._pending:
            command, future = self._pending.popleft()
            if not future.set_running_or_notify_cancel():
                continue
            drained.append((future, self._apply(command)))

        for day in self.clock.advance(elapsed):
            self._daily_pass(day)

        self.stats.ticks += 1
        snapshot = self._commit()

        for future, result in drained:
            future.set_result(replace(result, version=snapshot.version))
        return snapshot

    def _daily_pass(self, day: int):
        """Fixed-order day transition"""
        self._in_daily_pass = True
        try:
            self._log(f"Day {day} begins")

            for lot in self.inventory.age_one_day(day):
                self.analytics.record_expired_cards(lot.quantity, lot.total_cost)
                self._log(
                    f"Lost {lot.quantity}x {lot.retailer} ${lot.denomination} to expiration "
                    f"({format_cents(lot.total_cost)})"
                )

            expired_orders = self.order_book.expire_overdue(day)
            for order in expired_orders:
                delta = self.player.reputation.on_order_expired(order)
                self.analytics.record_expired_order()
                self._log(f"Order #{order.order_id} from {order.customer.name} expired (reputation {delta:+d})")

            for message in self.conditions.advance_day(day):
                self._log(message)

            self._generate_orders(day)
            self._close_day(day, len(expired_orders))
            self.analytics.start_new_day()
            self.stats.daily_passes += 1
        finally:
            self._in_daily_pass = False

        logger.debug(
            f"Day {day}: cash={self.player.cash} reputation={self.player.reputation.points} "
            f"orders={len(self.order_book)} lots={len(self.inventory)}"
        )

    def _generate_orders(self, day: int):
        weights = {
            key: float(self.conditions.demand_multiplier(key[0]))
            for key in self.market.listings()
        }
        orders = self.generator.generate_for_day(
            day,
            self.player.reputation,
            self.market,
            self.rng,
            first_order_id=self.next_order_id,
            demand_multiplier=float(self.conditions.demand_multiplier()),
            listing_weights=weights
        )
        for order in orders:
            self.order_book.insert(order)
            self._log(f"New order {order.describe()} (due day {order.deadline_day}, {order.priority.value})")
        self.next_order_id += len(orders)
        self.stats.orders_generated += len(orders)

    def _open_session(self):
        preset = self.config.preset
        self._log(
            f"Welcome! {self.config.difficulty.value.title()} difficulty, "
            f"starting cash {format_cents(preset.starting_cash)}"
        )
        self._log("Buy gift cards wholesale and fulfill customer orders before they expire")
        self._generate_orders(self.clock.now.day)
        logger.info(f"Session started: difficulty={self.config.difficulty.value} seed={self.config.seed}")

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _close_day(self, day: int, expired_today: int):
        achievements = self.achievements
        self._grant(achievements.close_day(
            expired_today, self.analytics.orders_completed, self.analytics.orders_expired, day
        ))
        self._grant(achievements.check_seasons(self.conditions.season, self.conditions.events_completed, day))
        self._grant(achievements.check_inventory(self.inventory, day))
        self._grant(achievements.check_orders(
            self.analytics.orders_completed, self.player.reputation.stars, day
        ))
        self._grant(achievements.check_cash(self.player.cash, day))
        self._flush_unlocks()

    def _grant(self, unlocks: List[Unlock]):
        """Credit achievement rewards; their messages wait for _flush_unlocks"""
        for unlock in unlocks:
            self.player.credit(unlock.reward)
            self._unlock_messages.append(
                f"Achievement unlocked: {unlock.name} (+{format_cents(unlock.reward)})"
            )

    def _flush_unlocks(self):
        for message in self._unlock_messages:
            self._log(message)
        self._unlock_messages.clear()

    def _price_adjustment(self, retailer: str) -> Decimal:
        return self.conditions.price_multiplier(retailer) * self.player.reputation.price_adjustment()

    def _log(self, message: str):
        now = self.clock.now
        self.activity.append(now.day, now.minute_of_day, message)

    def _commit(self) -> SimulationSnapshot:
        assert self.player.cash >= 0, "cash went negative"
        self._version += 1
        self._snapshot = self._build_snapshot(self._version)
        self.stats.snapshots_committed += 1
        return self._snapshot

    def _build_snapshot(self, version: int) -> SimulationSnapshot:
        reputation = self.player.reputation
        return SimulationSnapshot(
            version=version,
            time=self.clock.now,
            paused=self.clock.paused,
            player=PlayerView(
                cash=self.player.cash,
                reputation_points=reputation.points,
                reputation_stars=reputation.stars
            ),
            inventory=tuple(self.inventory.groups(self.clock.now.day, self.config.expiring_soon_days)),
            orders=tuple(self.order_book.active_orders()),
            activity=self.activity.tail(self.config.activity_tail),
            analytics=self.analytics.view(),
            season=self.conditions.season.value,
            market_events=self.conditions.event_names(),
            achievements=self.achievements.view()
        )

    # ========================================================================
    # STATE EXPORT
    # ========================================================================

    def export_state(self) -> dict:
        """
        JSON-safe dump of the whole model, rng included. Queued commands
        are not part of the state.
        """
        return {
            'format': STATE_FORMAT,
            'config': self.config.model_dump(mode='json'),
            'version': self._version,
            'next_order_id': self.next_order_id,
            'rng': self.rng.bit_generator.state,
            'clock': self.clock.export_state(),
            'market': self.market.export_state(),
            'conditions': self.conditions.export_state(),
            'player': {
                'cash': self.player.cash,
                'reputation_points': self.player.reputation.points
            },
            'inventory': self.inventory.export_state(),
            'order_book': self.order_book.export_state(),
            'analytics': self.analytics.export_state(),
            'achievements': self.achievements.export_state(),
            'activity': self.activity.export_state()
        }

    @classmethod
    def from_state(cls, state: dict, market: Optional[Market] = None) -> 'SimulationEngine':
        """Rebuild an engine that continues exactly where the exported one left off"""
        if state.get('format') != STATE_FORMAT:
            raise ValueError(f"Unsupported state format: {state.get('format')}")

        config = SimulationConfig.model_validate(state['config'])
        engine = cls(config, market=market, open_session=False)

        engine.rng.bit_generator.state = state['rng']
        engine.next_order_id = int(state['next_order_id'])
        engine.clock.restore_state(state['clock'])
        engine.market.restore_state(state['market'])
        engine.conditions.restore_state(state['conditions'])
        engine.player = Player(
            state['player']['cash'],
            Reputation(points=state['player']['reputation_points'])
        )
        engine.inventory = Inventory.from_state(state['inventory'])
        engine.order_book = OrderBook.from_state(state['order_book'], closed_history=config.closed_order_history)
        engine.analytics.restore_state(state['analytics'])
        engine.achievements.restore_state(state['achievements'])
        engine.activity.restore_state(state['activity'])

        engine._version = int(state['version'])
        engine._snapshot = engine._build_snapshot(engine._version)
        return engine

    def get_stats(self) -> dict:
        """Get engine statistics"""
        return {
            'engine': self.stats.__dict__,
            'clock': self.clock.get_stats().__dict__,
            'activity': self.activity.stats.__dict__,
            'version': self._version,
            'pending_commands': len(self._pending)
        }


class SimulationRunner:
    """
    Asyncio host loop: ticks the engine at a fixed cadence and
    publishes every committed snapshot to a bounded stream.
    """

    def __init__(
        self,
        engine: SimulationEngine,
        stream: Optional[BoundedSnapshotStream] = None,
        tick_interval: float = 0.5,
        speed: float = 1.0
    ):
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self.engine = engine
        self.stream = stream or BoundedSnapshotStream()
        self.tick_interval = tick_interval
        self.speed = speed
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, duration_seconds: Optional[float] = None):
        """
        Run the host loop.

        Args:
            duration_seconds: How long to run in real time (None = until stopped)
        """
        loop = asyncio.get_running_loop()
        started = last = loop.time()
        self._running = True

        logger.info(f"Starting simulation loop (tick={self.tick_interval}s, speed={self.speed}x)")
        await self.stream.publish(self.engine.snapshot)

        try:
            while self._running:
                await asyncio.sleep(self.tick_interval)
                now = loop.time()
                elapsed = (now - last) * self.speed
                last = now

                snapshot = self.engine.tick(elapsed)
                await self.stream.publish(snapshot)

                if duration_seconds is not None and now - started >= duration_seconds:
                    break
        except asyncio.CancelledError:
            logger.info("Simulation loop cancelled")
            raise
        finally:
            await self.shutdown()

    def pause(self) -> Future:
        """Pause simulation"""
        return self.engine.submit(Pause())

    def resume(self) -> Future:
        """Resume simulation"""
        return self.engine.submit(Resume())

    def set_speed(self, multiplier: float):
        """Set simulation speed (1.0 = real-time)"""
        if multiplier < 0:
            raise ValueError("Speed cannot be negative")
        self.speed = multiplier

    def stop(self):
        self._running = False

    async def shutdown(self):
        """Graceful shutdown"""
        logger.info("Shutting down simulation...")
        self._running = False
        await self.stream.close()
        logger.info("Simulation shutdown complete")

    def get_stats(self) -> dict:
        """Get simulation statistics"""
        stats = self.engine.get_stats()
        stats['stream'] = self.stream.get_stats().__dict__
        return stats
