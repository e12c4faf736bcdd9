"""trip-discovery CLI: swipe through suggestions for one city in the terminal."""

from __future__ import annotations

import argparse
import datetime as dt
import time
from typing import Callable, Optional

from dotenv import load_dotenv

from discovery_engine.adapters.memory import MemoryItinerary, MemoryRepository
from discovery_engine.adapters.tool_factory import get_suggestion_source, get_validation_provider
from discovery_engine.config.settings import load_settings
from discovery_engine.domain.enums import ItemStatus, ItemType, SessionState
from discovery_engine.domain.exceptions import ActionNotAllowed, GenerationFailed
from discovery_engine.domain.models import DiscoveryItem, TripBounds, format_price_level
from discovery_engine.engine.session import DiscoveryAdapters, DiscoverySession
from discovery_engine.shared.exceptions import ToolError

load_dotenv()

_COMMANDS = {
    "l": "left", "left": "left", "skip": "left",
    "r": "right", "right": "right", "save": "right",
    "u": "up", "up": "up", "schedule": "up",
}

InputFn = Callable[[str], str]


def format_card(item: DiscoveryItem, position: int, total: int) -> str:
    lines = [f"[{position + 1}/{total}] {item.name}" + (f"  ({item.category})" if item.category else "")]
    if item.description:
        lines.append(f"  {item.description}")
    if item.status == ItemStatus.VALIDATED and item.enriched:
        enriched = item.enriched
        facts = []
        if enriched.rating is not None:
            facts.append(f"{enriched.rating:.1f}★ ({enriched.user_ratings_total})")
        price = format_price_level(enriched.price_level)
        if price:
            facts.append(price)
        if enriched.open_now is not None:
            facts.append("open now" if enriched.open_now else "closed now")
        if facts:
            lines.append("  " + " · ".join(facts))
        if enriched.address:
            lines.append(f"  {enriched.address}")
        if enriched.rationale:
            lines.append(f"  Why: {enriched.rationale}")
    elif item.status == ItemStatus.ERROR:
        lines.append(f"  (could not verify: {item.error_message})")
    else:
        lines.append("  (checking place details...)")
    return "\n".join(lines)


def _wait_for(session: DiscoverySession, timeout: float) -> Optional[DiscoveryItem]:
    """Give the current card a moment to resolve before drawing it."""
    deadline = time.monotonic() + timeout
    while True:
        current = session.current()
        if not isinstance(current, DiscoveryItem):
            return None
        if current.is_resolved or time.monotonic() >= deadline:
            return current
        time.sleep(0.05)


def _negotiate(session: DiscoverySession, read: InputFn) -> None:
    negotiation = session.open_schedule()
    print(f"Schedule {negotiation.item.name}. Empty answers keep the default, 'c' cancels.")
    while negotiation.is_open:
        date = read(f"  date [{negotiation.default_date}]: ").strip()
        if date.lower() == "c":
            negotiation.cancel()
            print("  cancelled")
            return
        clock = read(f"  time [{negotiation.default_time}]: ").strip()
        result = negotiation.confirm(date or negotiation.default_date, clock or negotiation.default_time)
        if result.ok:
            print(f"  added on {result.payload.date} at {result.payload.time}")
            return
        for error in result.errors:
            print(f"  ! {error.message}")


def run(session: DiscoverySession, read: Optional[InputFn] = None, *, settle_seconds: float = 2.0) -> int:
    read = read or input
    try:
        session.start()
    except GenerationFailed as exc:
        print(f"Could not get suggestions: {exc}")
        answer = read("Retry? [y/N] ").strip().lower()
        if answer != "y":
            return 1
        try:
            session.retry()
        except GenerationFailed as retry_exc:
            print(f"Could not get suggestions: {retry_exc}")
            return 1

    print("l = skip, r = save, u = schedule, q = quit")
    try:
        while session.state == SessionState.ACTIVE:
            item = _wait_for(session, settle_seconds)
            if item is None:
                break
            print("\n" + format_card(item, session.position(), session.total()))
            try:
                raw = read("> ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                break
            if raw in ("q", "quit", "exit"):
                break
            direction = _COMMANDS.get(raw)
            if direction is None:
                print("Unknown command")
                continue
            try:
                if direction == "up":
                    _negotiate(session, read)
                else:
                    outcome = session.swipe(direction)
                    if direction == "right":
                        print(f"  {outcome.value.replace('_', ' ')}")
            except ActionNotAllowed as exc:
                print(f"  ! {exc}")
            except (EOFError, KeyboardInterrupt):
                break
    finally:
        session.close()

    if session.position() >= session.total() > 0:
        print("\nThat's everything for now.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Discover attractions or restaurants for a trip")
    parser.add_argument("city", help="city to explore")
    parser.add_argument("--region", default="", help="region or country")
    parser.add_argument("--type", dest="item_type", choices=[t.value for t in ItemType], default=ItemType.ATTRACTION.value)
    parser.add_argument("--trip-start", type=dt.date.fromisoformat, default=None)
    parser.add_argument("--trip-end", type=dt.date.fromisoformat, default=None)
    parser.add_argument("--saved", nargs="*", default=[], help="names already saved for this trip")
    args = parser.parse_args(argv)

    settings = load_settings()
    bounds = TripBounds(start=args.trip_start, end=args.trip_end)
    repository = MemoryRepository(args.saved)
    itinerary = MemoryItinerary(bounds)
    try:
        adapters = DiscoveryAdapters(
            suggestion_source=get_suggestion_source(),
            validation_provider=get_validation_provider(settings),
            repository=repository,
            itinerary=itinerary,
        )
    except ToolError as exc:
        print(f"Provider setup failed: {exc}")
        return 2

    session = DiscoverySession(
        args.city,
        adapters,
        region=args.region,
        item_type=ItemType(args.item_type),
        settings=settings,
        bounds=bounds,
    )
    code = run(session)

    saved = repository.records()[len(args.saved):]
    if saved:
        print("\nSaved: " + ", ".join(record.name for record in saved))
    for entry in itinerary.entries():
        print(f"Scheduled: {entry.item_name} on {entry.date} {entry.time}")
    return code


if __name__ == "__main__":
    raise SystemExit(main())
