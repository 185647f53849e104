import io

from scanlink.adapters.simulated import ConsoleCardReader, LoggingDisplay, TcpReachability


def test_console_reader_accepts_spaced_and_packed_serials() -> None:
    reader = ConsoleCardReader(io.StringIO())

    assert reader.feed("A9 6C 6A 05\n")
    assert reader.feed("0412ab7f")
    assert not reader.feed("hello")
    assert not reader.feed("   ")

    assert reader.is_card_present()
    assert reader.read_uid() == bytes([0xA9, 0x6C, 0x6A, 0x05])
    assert reader.read_uid() == bytes([0x04, 0x12, 0xAB, 0x7F])
    assert not reader.is_card_present()
    assert reader.read_uid() is None


def test_console_reader_pumps_stream() -> None:
    reader = ConsoleCardReader(io.StringIO("A9 6C 6A 05\nnope\n"))
    reader._pump()

    assert reader.read_uid() == bytes([0xA9, 0x6C, 0x6A, 0x05])
    assert reader.read_uid() is None


def test_logging_display_keeps_last_lines() -> None:
    display = LoggingDisplay()
    display.write_line(0, "System ready")
    display.clear()
    display.write_line(1, "Dolls")

    assert display.lines == {1: "Dolls"}


def test_reachability_reports_closed_port(unused_tcp_port: int) -> None:
    monitor = TcpReachability("127.0.0.1", unused_tcp_port, timeout=0.2)

    assert monitor.is_connected() is False
    assert monitor.reconnect() is False
