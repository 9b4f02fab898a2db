#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, TextIO

logger = logging.getLogger(__name__)

MAX_CITY_NAME_LEN = 20
MAX_FLIGHTS_PER_CITY = 5
MAX_DEFAULT_SCHEDULES = 50

# minute of day
TIME_MIN = 0
TIME_MAX = (60 * 24) - 1


# ---------------------------
# Errors
# ---------------------------

class ScheduleError(ValueError):
    """Base for every recoverable failure; structures are left unchanged."""


class NotFound(ScheduleError):
    pass


class CityNotFound(NotFound):
    def __init__(self, city: str) -> None:
        super().__init__(f"No schedule for {city}")
        self.city = city


class FlightNotFound(NotFound):
    def __init__(self, time: int) -> None:
        super().__init__(f"No flight scheduled at {time}")
        self.time = time


class CityExists(ScheduleError):
    def __init__(self, city: str) -> None:
        super().__init__(f"There is a schedule of {city} already.")
        self.city = city


class NotAvailable(ScheduleError):
    pass


class CityFull(ScheduleError):
    pass


class NoSeats(ScheduleError):
    pass


class BadTime(ScheduleError):
    pass


class PreconditionViolation(RuntimeError):
    """Raised for caller bugs, e.g. releasing a record that is not active."""


# ---------------------------
# Enums / Data Model
# ---------------------------

class Membership(str, Enum):
    FREE = "FREE"
    ACTIVE = "ACTIVE"


class ReleaseResult(str, Enum):
    RELEASED = "RELEASED"
    ALREADY_FULL = "ALREADY_FULL"


def validate_time(time: int) -> int:
    if not TIME_MIN <= time <= TIME_MAX:
        raise ValueError(f"time must be in [{TIME_MIN}, {TIME_MAX}], got {time}")
    return time


def validate_capacity(capacity: int) -> int:
    if capacity <= 0:
        raise ValueError(f"capacity must be > 0, got {capacity}")
    return capacity


@dataclass
class FlightSlot:
    time: Optional[int] = None  # None marks an unused slot
    available: int = 0
    capacity: int = 0

    @property
    def is_empty(self) -> bool:
        return self.time is None

    def clear(self) -> None:
        self.time = None
        self.available = 0
        self.capacity = 0


def _slot_sort_key(slot: FlightSlot) -> tuple:
    # empty slots always go last
    if slot.time is None:
        return (1, 0)
    return (0, slot.time)


class FlightTable:
    """Bounded, time-ordered set of flight slots for one destination.

    Slot positions move on every add/remove; callers locate flights by
    time and never keep a slot index around.
    """

    def __init__(self, size: int = MAX_FLIGHTS_PER_CITY) -> None:
        self.slots: List[FlightSlot] = [FlightSlot() for _ in range(size)]

    def __len__(self) -> int:
        return sum(1 for s in self.slots if not s.is_empty)

    def __iter__(self) -> Iterator[FlightSlot]:
        return iter(self.flights())

    @property
    def is_full(self) -> bool:
        return all(not s.is_empty for s in self.slots)

    def flights(self) -> List[FlightSlot]:
        return [s for s in self.slots if not s.is_empty]

    def find(self, time: int) -> Optional[FlightSlot]:
        for slot in self.slots:
            if slot.time == time:
                return slot
        return None

    def _sort(self) -> None:
        self.slots.sort(key=_slot_sort_key)

    def add(self, time: int, capacity: int) -> FlightSlot:
        validate_time(time)
        validate_capacity(capacity)

        if self.is_full:
            raise CityFull(f"Cannot add more than {len(self.slots)} flights.")

        slot = next(s for s in self.slots if s.is_empty)
        slot.time = time
        slot.capacity = capacity
        slot.available = capacity
        self._sort()
        return slot

    def remove(self, time: int) -> None:
        slot = self.find(time)
        if slot is None:
            raise FlightNotFound(time)
        slot.clear()
        self._sort()

    def reset(self) -> None:
        for slot in self.slots:
            slot.clear()


@dataclass
class ScheduleRecord:
    index: int
    destination: str = ""
    flights: FlightTable = field(default_factory=FlightTable)
    membership: Membership = Membership.FREE
    # links are indices into the owning pool's records
    prev: Optional[int] = None
    next: Optional[int] = None

    def reset(self) -> None:
        self.destination = ""
        self.flights.reset()
        self.prev = None
        self.next = None


# ---------------------------
# Schedule Pool
# ---------------------------

class SchedulePool:
    """
    Fixed number of schedule records split across two doubly linked
    lists, free and active. Adding a schedule takes the head of the free
    list and pushes it on the active list; removing one splices it out of
    the active list, clears it and pushes it back on the free list.
    """

    def __init__(self, capacity: int = MAX_DEFAULT_SCHEDULES) -> None:
        if capacity <= 0:
            raise ValueError(f"pool capacity must be > 0, got {capacity}")
        self.capacity = capacity
        self.records: List[ScheduleRecord] = [ScheduleRecord(index=i) for i in range(capacity)]
        for i, rec in enumerate(self.records):
            rec.prev = i - 1 if i > 0 else None
            rec.next = i + 1 if i < capacity - 1 else None
        self.free_head: Optional[int] = 0
        self.active_head: Optional[int] = None
        self.free_count = capacity
        self.active_count = 0

    def _walk(self, head: Optional[int]) -> Iterator[ScheduleRecord]:
        idx = head
        while idx is not None:
            rec = self.records[idx]
            yield rec
            idx = rec.next

    def iter_free(self) -> Iterator[ScheduleRecord]:
        return self._walk(self.free_head)

    def iter_active(self) -> Iterator[ScheduleRecord]:
        return self._walk(self.active_head)

    def _push(self, rec: ScheduleRecord, head: Optional[int]) -> int:
        rec.prev = None
        rec.next = head
        if head is not None:
            self.records[head].prev = rec.index
        return rec.index

    def allocate(self) -> ScheduleRecord:
        if self.free_head is None:
            raise NotAvailable("Sorry no more free schedules.")

        rec = self.records[self.free_head]
        self.free_head = rec.next
        if self.free_head is not None:
            self.records[self.free_head].prev = None

        self.active_head = self._push(rec, self.active_head)
        rec.membership = Membership.ACTIVE
        rec.destination = ""
        self.free_count -= 1
        self.active_count += 1
        logger.debug("allocated schedule %d (free=%d active=%d)", rec.index, self.free_count, self.active_count)
        return rec

    def release(self, rec: ScheduleRecord) -> None:
        if (
            rec.index >= len(self.records)
            or self.records[rec.index] is not rec
            or rec.membership != Membership.ACTIVE
        ):
            raise PreconditionViolation(f"schedule {rec.index} is not on this pool's active list")

        # splice out of the active list
        if rec.prev is not None:
            self.records[rec.prev].next = rec.next
        else:
            self.active_head = rec.next
        if rec.next is not None:
            self.records[rec.next].prev = rec.prev

        destination = rec.destination
        rec.reset()
        rec.membership = Membership.FREE
        self.free_head = self._push(rec, self.free_head)
        self.active_count -= 1
        self.free_count += 1
        logger.debug("released schedule %d (%s)", rec.index, destination)


# ---------------------------
# Directory
# ---------------------------

def normalize_city(raw: str) -> str:
    # skip leading non letter characters, keep the rest
    start = 0
    while start < len(raw) and not (raw[start].isascii() and raw[start].isalpha()):
        start += 1
    city = raw[start:].rstrip()[:MAX_CITY_NAME_LEN]
    if not city:
        raise ValueError("Empty city name.")
    return city


def find_schedule(pool: SchedulePool, city: str) -> ScheduleRecord:
    key = city[:MAX_CITY_NAME_LEN]
    for rec in pool.iter_active():
        if rec.destination[:MAX_CITY_NAME_LEN] == key:
            return rec
    raise CityNotFound(city)


# ---------------------------
# Seat Booking
# ---------------------------

def book_seat(table: FlightTable, time: int) -> int:
    """
    Book one seat on the earliest flight at or after ``time`` that still
    has a free seat. Returns the time actually booked, which may be later
    than the one requested.
    """
    validate_time(time)
    for slot in table:
        if slot.time >= time and slot.available > 0:
            slot.available -= 1
            return slot.time
    raise NoSeats("Sorry there's no more seats available!")


def release_seat(table: FlightTable, time: int) -> ReleaseResult:
    validate_time(time)
    slot = table.find(time)
    if slot is None:
        raise BadTime("Sorry there's no flight scheduled on this time.")
    if slot.available >= slot.capacity:
        return ReleaseResult.ALREADY_FULL
    slot.available += 1
    return ReleaseResult.RELEASED


# ---------------------------
# Core Service
# ---------------------------

class ScheduleService:
    def __init__(self, pool: SchedulePool) -> None:
        self.pool = pool

    def add_city(self, city: str) -> ScheduleRecord:
        if not city.strip():
            raise ValueError("Empty city name.")
        try:
            find_schedule(self.pool, city)
        except CityNotFound:
            pass
        else:
            raise CityExists(city)

        rec = self.pool.allocate()
        rec.destination = city[:MAX_CITY_NAME_LEN]
        return rec

    def remove_city(self, city: str) -> None:
        self.pool.release(find_schedule(self.pool, city))

    def list_cities(self) -> List[str]:
        return [rec.destination for rec in self.pool.iter_active()]

    def list_flights(self, city: str) -> List[FlightSlot]:
        return find_schedule(self.pool, city).flights.flights()

    def add_flight(self, city: str, time: int, capacity: int) -> FlightSlot:
        rec = find_schedule(self.pool, city)
        slot = rec.flights.add(time, capacity)
        logger.debug("%s: added flight at %d (capacity %d)", rec.destination, time, capacity)
        return slot

    def remove_flight(self, city: str, time: int) -> None:
        rec = find_schedule(self.pool, city)
        rec.flights.remove(time)
        logger.debug("%s: removed flight at %d", rec.destination, time)

    def book_seat(self, city: str, time: int) -> int:
        return book_seat(find_schedule(self.pool, city).flights, time)

    def release_seat(self, city: str, time: int) -> ReleaseResult:
        return release_seat(find_schedule(self.pool, city).flights, time)


# ---------------------------
# CLI
# ---------------------------

HELP_TEXT = (
    "Here are the possible commands:\n"
    "A <city name>     - Add an active empty flight schedule for\n"
    "                    <city name>\n"
    "L                 - List cities which have an active schedule\n"
    "l <city name>     - List the flights for <city name>\n"
    "a <city name>\n"
    "<time> <capacity> - Add a flight for <city name> @ <time> time\n"
    "                    with <capacity> seats\n"
    "r <city name>\n"
    "<time>            - Remove a flight from <city name> whose time is\n"
    "                    <time>\n"
    "s <city name>\n"
    "<time>            - Attempt to schedule seat on flight to \n"
    "                    <city name> at <time> or next closest time on\n"
    "                    which there is an available seat\n"
    "u <city name>\n"
    "<time>            - unschedule a seat from flight to <city name>\n"
    "                    at <time>\n"
    "R <city name>     - Remove schedule for <city name>\n"
    "h                 - print this help message\n"
    "q                 - quit\n"
)

MSG_TIME_BAD = "Invalid time value"
MSG_CAPACITY_BAD = "Invalid capacity value"
MSG_FLIGHT_BAD_TIME = "Sorry there's no flight scheduled on this time."
MSG_MAX_FLIGHTS = "Sorry we cannot add more flights on this city."
MSG_ALL_SEATS_EMPTY = "All the seats on this flights are empty!"
MSG_BAD_COMMAND = "Bad command. Use h to see help."

# plain ASCII decimal, optionally signed
INT_TOKEN = re.compile(r"^[+-]?\d+$", re.ASCII)


class CommandReader:
    """
    Pulls commands, city names and integers off a text stream.

    A command is the next non-blank character. A city is the rest of the
    line from the first letter on. Integers are whitespace separated and
    may sit on later lines.
    """

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self.line = ""

    def _fill(self) -> bool:
        if self.line:
            return True
        self.line = self.stream.readline()
        return bool(self.line)

    def read_command(self) -> Optional[str]:
        while self._fill():
            self.line = self.line.lstrip()
            if self.line:
                cmd, self.line = self.line[0], self.line[1:]
                return cmd
        return None

    def read_city(self) -> Optional[str]:
        while self._fill():
            raw = self.line
            self.line = ""
            try:
                return normalize_city(raw)
            except ValueError:
                continue
        return None

    def read_int(self) -> Optional[int]:
        """Returns None at end of input or when the next token is not an integer."""
        while self._fill():
            self.line = self.line.lstrip()
            if not self.line:
                continue
            parts = self.line.split(None, 1)
            token = parts[0]
            self.line = parts[1] if len(parts) > 1 else ""
            if not INT_TOKEN.match(token):
                return None
            return int(token)
        return None


def check_time(time: Optional[int], out: TextIO) -> bool:
    if time is None or not TIME_MIN <= time <= TIME_MAX:
        print(MSG_TIME_BAD, file=out)
        return False
    return True


def check_capacity(capacity: Optional[int], out: TextIO) -> bool:
    if capacity is None or capacity <= 0:
        print(MSG_CAPACITY_BAD, file=out)
        return False
    return True


def read_time(reader: CommandReader, out: TextIO) -> Optional[int]:
    time = reader.read_int()
    return time if check_time(time, out) else None


def format_flights(city: str, flights: List[FlightSlot]) -> str:
    parts = [f"The flights for {city} are:"]
    for f in flights:
        parts.append(f" ({f.time}, {f.available}, {f.capacity})")
    return "".join(parts)


def cmd_add_city(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    svc.add_city(city)


def cmd_list_cities(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    for city in svc.list_cities():
        print(city, file=out)


def cmd_list_flights(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    print(format_flights(city, svc.list_flights(city)), file=out)


def cmd_add_flight(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    # both operands are consumed even when the first one is bad
    time = reader.read_int()
    capacity = reader.read_int()
    if not (check_time(time, out) and check_capacity(capacity, out)):
        return
    try:
        svc.add_flight(city, time, capacity)
    except CityFull:
        print(MSG_MAX_FLIGHTS, file=out)


def cmd_remove_flight(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    time = read_time(reader, out)
    if time is None:
        return
    try:
        svc.remove_flight(city, time)
    except FlightNotFound:
        print(MSG_FLIGHT_BAD_TIME, file=out)


def cmd_book_seat(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    time = read_time(reader, out)
    if time is None:
        return
    booked = svc.book_seat(city, time)
    print(f"Booked a seat on the flight at {booked}.", file=out)


def cmd_release_seat(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    time = read_time(reader, out)
    if time is None:
        return
    if svc.release_seat(city, time) == ReleaseResult.ALREADY_FULL:
        print(MSG_ALL_SEATS_EMPTY, file=out)


def cmd_remove_city(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    city = reader.read_city()
    if city is None:
        return
    svc.remove_city(city)


def cmd_help(reader: CommandReader, svc: ScheduleService, out: TextIO) -> None:
    out.write(HELP_TEXT)


COMMANDS = {
    "A": cmd_add_city,
    "L": cmd_list_cities,
    "l": cmd_list_flights,
    "a": cmd_add_flight,
    "r": cmd_remove_flight,
    "s": cmd_book_seat,
    "u": cmd_release_seat,
    "R": cmd_remove_city,
    "h": cmd_help,
}


def run(svc: ScheduleService, stdin: TextIO, stdout: TextIO) -> None:
    reader = CommandReader(stdin)
    out = stdout
    out.write(HELP_TEXT)

    while True:
        command = reader.read_command()
        if command is None or command == "q":
            break
        handler = COMMANDS.get(command)
        if handler is None:
            print(MSG_BAD_COMMAND, file=out)
            continue
        try:
            handler(reader, svc, out)
        except ScheduleError as e:
            logger.info("command %r failed: %s", command, e)
            print(str(e), file=out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flight-schedules", description="Flight schedule and seat booking shell")
    parser.add_argument(
        "max_schedules",
        nargs="?",
        type=int,
        default=MAX_DEFAULT_SCHEDULES,
        help=f"Number of city schedules to allocate (default: {MAX_DEFAULT_SCHEDULES})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostics on stderr (default: WARNING)",
    )
    return parser


def main(argv: List[str], stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    try:
        pool = SchedulePool(args.max_schedules)
    except ValueError:
        print("ERROR: Bad number of default max schedules specified.", file=sys.stderr)
        return 1

    if stdin is None:
        stdin = sys.stdin
    if stdout is None:
        stdout = sys.stdout
    run(ScheduleService(pool), stdin, stdout)
    return 0


def cli() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(cli())
