# keycore/tests/test_logging.py
import io
import json
import logging

from keycore.logging import JSONFormatter, bound, configure_json_logging, context, scrub_dict


def _record(msg="hello", **extra):
    rec = logging.LogRecord("keycore.test", logging.WARNING, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


def test_formatter_envelope():
    evt = json.loads(JSONFormatter().format(_record()))
    assert evt["schema"] == "keycore.log.v1"
    assert evt["lvl"] == "WARNING"
    assert evt["logger"] == "keycore.test"
    assert evt["msg"] == "hello"
    assert evt["ts"].endswith("Z")


def test_formatter_masks_key_material():
    evt = json.loads(JSONFormatter().format(_record(type_url="t", d="1234", crt=b"\x01\x02")))
    assert evt["meta"]["type_url"] == "t"
    assert evt["meta"]["d"] == "***"
    assert evt["meta"]["crt"] == "***"


def test_bound_context_is_emitted_and_restored():
    assert context() == {}
    with bound(type_url="type.example/key", ignored=None):
        assert context() == {"type_url": "type.example/key"}
        with bound(name="JWT_RS256_2048_F4"):
            evt = json.loads(JSONFormatter().format(_record()))
            assert evt["type_url"] == "type.example/key"
            assert evt["name"] == "JWT_RS256_2048_F4"
        assert context() == {"type_url": "type.example/key"}
    assert context() == {}


def test_scrub_dict_summarizes_bytes():
    assert scrub_dict({"n": b"\x00" * 4}) == {"n": "<4 bytes>"}


def test_configure_json_logging_writes_json():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    stream = io.StringIO()
    configure_json_logging("INFO", stream=stream)
    try:
        logging.getLogger("keycore.test").info("registered %s", "x")
        line = stream.getvalue().strip().splitlines()[-1]
        assert json.loads(line)["msg"] == "registered x"
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_named_logger_configuration_leaves_root_alone():
    root = logging.getLogger()
    host = logging.StreamHandler(io.StringIO())
    root.addHandler(host)
    pkg = logging.getLogger("keycore")
    saved = (list(pkg.handlers), pkg.level, pkg.propagate)
    stream = io.StringIO()
    try:
        configure_json_logging("INFO", stream=stream, logger_name="keycore")
        assert host in root.handlers
        assert pkg.propagate is False

        logging.getLogger("keycore.registry").info("hello")
        assert json.loads(stream.getvalue().strip())["logger"] == "keycore.registry"
        assert host.stream.getvalue() == ""
    finally:
        root.removeHandler(host)
        pkg.handlers[:] = saved[0]
        pkg.setLevel(saved[1])
        pkg.propagate = saved[2]
