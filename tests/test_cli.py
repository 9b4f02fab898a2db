import io
import logging
import sys

import pytest

from flight_schedules import (
    HELP_TEXT,
    CommandReader,
    SchedulePool,
    ScheduleService,
    cli,
    main,
    run,
)


def _run(script: str, capacity: int = 5):
    out = io.StringIO()
    run(ScheduleService(SchedulePool(capacity)), io.StringIO(script), out)
    text = out.getvalue()
    assert text.startswith(HELP_TEXT)
    return text[len(HELP_TEXT):].splitlines()


def test_reader_tokens_across_lines():
    reader = CommandReader(io.StringIO("a Toronto\n360\n  100\nL\n"))
    assert reader.read_command() == "a"
    assert reader.read_city() == "Toronto"
    assert reader.read_int() == 360
    assert reader.read_int() == 100
    assert reader.read_command() == "L"
    assert reader.read_command() is None


def test_reader_city_on_next_line():
    reader = CommandReader(io.StringIO("A\n  Ottawa  \n"))
    assert reader.read_command() == "A"
    assert reader.read_city() == "Ottawa"


def test_reader_bad_integer_is_consumed():
    reader = CommandReader(io.StringIO("abc 7\n"))
    assert reader.read_int() is None
    assert reader.read_int() == 7
    assert reader.read_int() is None


def test_add_and_list_flights():
    lines = _run("A Toronto\na Toronto\n360 100\na Toronto\n0 5\nl Toronto\nq\n")
    assert lines == ["The flights for Toronto are: (0, 5, 5) (360, 100, 100)"]


def test_list_cities_newest_first():
    lines = _run("A Toronto\nA Ottawa\nL\nR Toronto\nL\n")
    assert lines == ["Ottawa", "Toronto", "Ottawa"]


def test_duplicate_city_and_exhausted_pool():
    lines = _run("A Toronto\nA Toronto\nA Ottawa\nA Paris\n", capacity=2)
    assert lines == [
        "There is a schedule of Toronto already.",
        "Sorry no more free schedules.",
    ]


def test_unknown_city_messages():
    lines = _run("l Paris\ns Paris\n300\nR Paris\n")
    assert lines == ["No schedule for Paris"] * 3


def test_book_and_release():
    script = (
        "A Toronto\n"
        "a Toronto\n360 1\n"
        "s Toronto\n300\n"
        "s Toronto\n300\n"
        "u Toronto\n360\n"
        "u Toronto\n360\n"
        "u Toronto\n100\n"
    )
    assert _run(script) == [
        "Booked a seat on the flight at 360.",
        "Sorry there's no more seats available!",
        "All the seats on this flights are empty!",
        "Sorry there's no flight scheduled on this time.",
    ]


def test_city_full_and_remove_flight():
    adds = "".join(f"a Toronto\n{t} 10\n" for t in (100, 200, 300, 400, 500, 600))
    script = "A Toronto\n" + adds + "r Toronto\n999\nr Toronto\n100\nl Toronto\n"
    assert _run(script) == [
        "Sorry we cannot add more flights on this city.",
        "Sorry there's no flight scheduled on this time.",
        "The flights for Toronto are: (200, 10, 10) (300, 10, 10) (400, 10, 10) (500, 10, 10)",
    ]


@pytest.mark.parametrize(
    "operands, message",
    [
        ("1440 10", "Invalid time value"),
        ("-1 10", "Invalid time value"),
        ("soon 10", "Invalid time value"),
        ("360 0", "Invalid capacity value"),
        ("360 many", "Invalid capacity value"),
    ],
)
def test_add_flight_validation(operands, message):
    lines = _run(f"A Toronto\na Toronto\n{operands}\nl Toronto\n")
    assert lines == [message, "The flights for Toronto are:"]


def test_bad_command_and_help():
    out = io.StringIO()
    run(ScheduleService(SchedulePool(1)), io.StringIO("x\nh\nq\nA Toronto\n"), out)
    assert out.getvalue() == HELP_TEXT + "Bad command. Use h to see help.\n" + HELP_TEXT


def test_main_runs_commands():
    out = io.StringIO()
    rc = main(["2"], stdin=io.StringIO("A X\nA Y\nA Z\nq\n"), stdout=out)
    assert rc == 0
    assert out.getvalue().endswith("Sorry no more free schedules.\n")


def test_main_rejects_zero_schedules(capsys):
    out = io.StringIO()
    rc = main(["0"], stdin=io.StringIO("A X\n"), stdout=out)
    assert rc == 1
    assert out.getvalue() == ""
    assert "Bad number of default max schedules" in capsys.readouterr().err


@pytest.mark.parametrize("token", ["3_60", "٣٦٠", "36.0", "0x10", "+-5"])
def test_reader_rejects_non_decimal_tokens(token):
    reader = CommandReader(io.StringIO(f"{token} 42\n"))
    assert reader.read_int() is None
    assert reader.read_int() == 42


def test_reader_accepts_signed_integers():
    reader = CommandReader(io.StringIO("+360 -1\n"))
    assert reader.read_int() == 360
    assert reader.read_int() == -1


def test_main_writes_to_current_stdout(capsys):
    rc = main(["1"], stdin=io.StringIO("A X\nA Y\nq\n"))
    assert rc == 0
    assert capsys.readouterr().out.endswith("Sorry no more free schedules.\n")


def test_main_debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="flight_schedules")
    out = io.StringIO()
    rc = main(["--log-level", "DEBUG", "1"], stdin=io.StringIO("A Toronto\nR Toronto\nq\n"), stdout=out)
    assert rc == 0
    assert "allocated schedule 0" in caplog.text
    assert "released schedule 0 (Toronto)" in caplog.text


def test_cli_reads_process_streams(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["flight-schedules", "1"])
    monkeypatch.setattr(sys, "stdin", io.StringIO("A Toronto\nL\nq\n"))
    assert cli() == 0
    assert capsys.readouterr().out == HELP_TEXT + "Toronto\n"
