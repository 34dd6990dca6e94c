"""Rotation Sim: headless run of the tick-rotation core against SimulatedHost.

A small pack of hostiles engages the agent. Incoming damage drains health,
one hostile casts a blockable spell every few seconds, and the agent's
abilities apply their statuses through SimulatedHost effects. Every fired
rule is printed, followed by a per-rule summary.

Run:
    uv run python main.py
    uv run python main.py --ticks 600 --mode b
    uv run python main.py --verbose
"""
from __future__ import annotations

import argparse
import logging
import random
from collections import Counter
from dataclasses import dataclass

from tick_rotation import (
    MODE_AUTO,
    MODE_FORCE_A,
    MODE_FORCE_B,
    AbilityCatalogue,
    FiredRule,
    FixedRateDriver,
    HostileActor,
    Role,
    RotationConfig,
    SimulatedHost,
    StatusRole,
    TickOrchestrator,
    TickSnapshot,
)

TPS = 10
CAST_EVERY = 4.0  # seconds between hostile spell casts


# ---------------------------------------------------------------------------
# Ability effects
# ---------------------------------------------------------------------------

def _refresh_buffer(host: SimulatedHost, target: object) -> None:
    stacks = 0
    if host.status_active(StatusRole.BUFFER):
        stacks = host.status_stack_count(StatusRole.BUFFER)
    host.apply_status(StatusRole.BUFFER, 30.0, stacks=min(10, stacks + 3))


def _heal(amount: float):
    def effect(host: SimulatedHost, target: object) -> None:
        host.health = min(100.0, host.health + amount)
    return effect


def _status(status_id: str, duration: float):
    def effect(host: SimulatedHost, target: object) -> None:
        host.apply_status(status_id, duration)
    return effect


def _stop_cast(host: SimulatedHost, target: object) -> None:
    if target is not None:
        host.update_hostile(target, casting=False, cast_remaining=0.0)


def _dot_all(host: SimulatedHost, target: object) -> None:
    for actor in host.nearby_hostiles(10.0):
        debuffs = dict(actor.debuffs)
        debuffs[StatusRole.DOT] = 24.0
        host.update_hostile(actor.entity, debuffs=debuffs)


def build_host(rng: random.Random, unlearned: tuple[str, ...]) -> SimulatedHost:
    host = SimulatedHost(
        AbilityCatalogue.generic(),
        continuous=20.0,
        continuous_regen=8.0,
        unlearned=unlearned,
    )
    host.combat = True
    host.configure(Role.BURST, cooldown=60.0)
    host.configure(Role.GROUND_EFFECT, cooldown=12.0, max_charges=2, charges=2)
    host.configure(Role.AREA_GENERATOR, cooldown=6.0, max_charges=2, charges=2)
    host.configure(Role.DIRECT_INTERRUPT, cooldown=15.0)
    for role in (Role.HEALTH_BOOST, Role.MAJOR_MITIGATION, Role.MAGIC_SHIELD):
        host.configure(role, cooldown=90.0)
    host.configure(Role.MINOR_MITIGATION, cooldown=30.0)

    host.on_cast(Role.BUFFER_REFRESH, _refresh_buffer)
    host.on_cast(Role.BUFFER_REFRESH_RANGED, _refresh_buffer)
    host.on_cast(Role.SURVIVAL_STRIKE, _heal(12.0))
    host.on_cast(Role.BURST, _status(StatusRole.BURST, 12.0))
    host.on_cast(Role.GROUND_EFFECT, _status(StatusRole.GROUND_EFFECT, 10.0))
    host.on_cast(Role.CHANNEL, _status(StatusRole.CHANNEL, 3.0))
    host.on_cast(Role.HEALTH_BOOST, _status(StatusRole.HEALTH_BOOST, 10.0))
    host.on_cast(Role.MAJOR_MITIGATION, _status(StatusRole.MAJOR_MITIGATION, 8.0))
    host.on_cast(Role.MAGIC_SHIELD, _status(StatusRole.MAGIC_SHIELD, 5.0))
    host.on_cast(Role.AREA_GENERATOR, _dot_all)
    host.on_cast(Role.DIRECT_INTERRUPT, _stop_cast)

    for i in range(3):
        host.add_hostile(HostileActor(
            f"raider-{i}",
            distance=rng.uniform(2.0, 4.5),
            time_to_die=rng.uniform(40.0, 90.0),
        ))
    host.add_hostile(HostileActor("shaman", distance=3.5, magical=True, time_to_die=60.0))
    host.set_target("raider-0")
    return host


# ---------------------------------------------------------------------------
# World step
# ---------------------------------------------------------------------------

@dataclass
class Pressure:
    """Incoming damage model."""
    damage_per_second: float = 6.0
    next_cast: float = CAST_EVERY


def world_step(host: SimulatedHost, pressure: Pressure, rng: random.Random, dt: float) -> None:
    host.advance(dt)
    host.health = max(1.0, host.health - pressure.damage_per_second * dt * rng.uniform(0.5, 1.5))
    host.predicted_health = max(0.0, host.health - pressure.damage_per_second)
    if host.now >= pressure.next_cast:
        host.update_hostile("shaman", casting=True, cast_remaining=2.5, targeting_agent=True)
        pressure.next_cast += CAST_EVERY


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

_MODES = {"auto": MODE_AUTO, "a": MODE_FORCE_A, "b": MODE_FORCE_B}


def main() -> None:
    parser = argparse.ArgumentParser(description="tick-rotation headless simulation")
    parser.add_argument(
        "--ticks", type=int, default=300,
        help="Number of ticks to run (default: 300)",
    )
    parser.add_argument(
        "--mode", choices=sorted(_MODES), default="auto",
        help="Mode override (default: auto)",
    )
    parser.add_argument(
        "--seed", type=int, default=7,
        help="Random seed (default: 7)",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Show debug logging from the rotation core",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)-5s %(name)s: %(message)s",
    )

    rng = random.Random(args.seed)
    host = build_host(rng, unlearned=(Role.CAPABILITY_A,))
    pressure = Pressure()
    counts: Counter[str] = Counter()

    def on_fire(record: FiredRule, snapshot: TickSnapshot) -> None:
        counts[record.rule] += 1
        print(
            f"  t={record.time:6.1f}  {record.rule:28s} "
            f"hp={snapshot.health:5.1f} rp={snapshot.continuous:5.1f} "
            f"slots={snapshot.forecast.current} buffer={snapshot.buffer.stacks}"
        )

    config = RotationConfig(mode_override=_MODES[args.mode])
    orchestrator = TickOrchestrator(host, config=config, on_fire=on_fire)
    driver = FixedRateDriver(
        tps=TPS, advance=lambda dt: world_step(host, pressure, rng, dt)
    )
    orchestrator.register(driver)

    print("=" * 60)
    print("  ROTATION SIM: tick-rotation against SimulatedHost")
    print("=" * 60)
    driver.run(args.ticks)

    print(f"\n{'=' * 60}")
    print(f"  {driver.frames} ticks, {sum(counts.values())} actions")
    last = orchestrator.last_snapshot
    mode = last.mode.value if last is not None and last.mode is not None else "none"
    print(f"  mode: {mode}")
    for rule, n in counts.most_common():
        print(f"  {rule:28s} {n:4d}")
    print(f"{'=' * 60}\n")


if __name__ == "__main__":
    main()
