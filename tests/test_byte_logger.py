from loopback.byte_logger import ByteDumpLogger, interpret
from loopback.transport import LoopbackTransport


def test_dump_files_written(tmp_path):
    base = tmp_path / "session"
    with ByteDumpLogger(str(base)) as bl:
        bl.log_send(b"G0 X1\n", "TEST")
        bl.log_recv(b"ok\n")
        bl.log_recv(b"")
        bl.log_error("something odd")

    raw = (tmp_path / "session.dump").read_bytes()
    assert b">>> SEND G0 X1\n" in raw
    assert b"<<< RECV ok\n" in raw

    text = (tmp_path / "session.dump.txt").read_text()
    assert "SEND (6 bytes): TEST" in text
    assert "RECV (3 bytes)" in text
    assert "→ OK" in text
    assert "ERROR: something odd" in text
    assert "Log closed" in text


def test_logging_after_close_is_ignored(tmp_path):
    bl = ByteDumpLogger(str(tmp_path / "x"))
    bl.close()
    bl.log_send(b"late\n")
    bl.log_recv(b"late\n")
    bl.log_error("port went away")
    bl.close()

    text = (tmp_path / "x.dump.txt").read_text()
    assert "port went away" not in text
    assert text.rstrip().splitlines()[-1].startswith("Log closed")


def test_interpret():
    assert interpret(b"ok\n") == "OK"
    assert interpret(b"error:20\n") == "ERROR"
    assert interpret(b"<Idle|MPos:0,0,0>\n") == "STATUS"
    assert interpret(b"Grbl 1.1h ['$' for help]\n") == "BANNER"
    assert interpret(b'{"sr":{}}\n') == "JSON STATUS"
    assert interpret(b'{"r":{}}\n') == "JSON"
    assert interpret(b"[GC:G0]\n") == "FEEDBACK"
    assert interpret(b"$0=10\n") == "SETTING"
    assert interpret(b"\n") == "BLANK"
    assert interpret(b"hello\n") == ""


def test_transport_records_traffic(tmp_path):
    base = tmp_path / "grbl"
    bl = ByteDumpLogger(str(base))
    t = LoopbackTransport("loopback://grbl", response_delay_ms=0, timeout=1.0, byte_logger=bl)
    try:
        t.readline()
        t.readline()
        t.write(b"?\n")
        t.readline()
    finally:
        t.close()
        bl.close()

    text = (tmp_path / "grbl.dump.txt").read_text()
    assert "→ BANNER" in text
    assert "→ STATUS" in text
    assert "SEND (2 bytes)" in text

