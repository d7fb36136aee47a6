"""tests/conftest.py: Shared fixtures for the LogPack test suite."""
import random
import sys
from pathlib import Path

import pytest

# Add api/ to sys.path for engine imports
API_DIR = str(Path(__file__).resolve().parent.parent / "api")
if API_DIR not in sys.path:
    sys.path.insert(0, API_DIR)

TOOLS_DIR = Path(__file__).resolve().parent.parent / "tools"


def _make_access_log(n: int, seed: int = 7) -> bytes:
    rng = random.Random(seed)
    paths = ["/api/users", "/api/orders", "/healthz", "/static/app.js", "/login"]
    out = []
    for i in range(n):
        ip = f"10.0.{rng.randint(0, 3)}.{rng.randint(1, 254)}"
        status = rng.choice([200, 200, 200, 304, 404, 500])
        path = rng.choice(paths)
        out.append(
            f'{ip} - - [17/Oct/2026:10:{i // 60 % 60:02d}:{i % 60:02d} +0000] '
            f'"GET {path} HTTP/1.1" {status} {rng.randint(0, 5000)} "-" "curl/8.4.0"\n'
        )
    return "".join(out).encode("ascii")


@pytest.fixture
def tools_dir():
    return TOOLS_DIR


@pytest.fixture
def access_log():
    return _make_access_log(400)


@pytest.fixture
def mixed_log():
    """CRLF lines, control bytes, long shared prefixes and an unterminated tail."""
    return b"".join([
        b"2026-10-17 10:00:00 INFO service started\r\n",
        b"2026-10-17 10:00:00 INFO service started\r\n",
        b"2026-10-17 10:00:01 WARN \x7f\x7f payload with control bytes\n",
        b"2026-10-17 10:00:02 WARN \x7f\x7e payload with control bytes\n",
        b"\x7f\n",
        b"\x7f\n",
        b"\n",
        b"\n",
        b"A" * 400 + b"\n",
        b"A" * 400 + b"B\n",
        b"A" * 127 + b"C\n",
        b"A" * 128 + b"D\n",
        b"short\n",
        b"short but now considerably longer than before\n",
        b"\x00\x01\x02\xff\xfe binary-ish bytes\n",
        b"no terminator at the end",
    ])
