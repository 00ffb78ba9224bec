"""Hello-world workflow for forkio.

Run with:
    forkio examples/hello_world.py
    HELLO_WORLD_URL=https://example.com/ forkio --print-result examples/hello_world.py

``nop``, ``sleep``, ``fork`` and ``fetch`` are installed as globals by the
scheduler. The last expression of the file (``main``) is the entry point.
"""

import os

from forkio import NetworkError

URL = os.environ.get("HELLO_WORLD_URL", "http://localhost/")


def ticker():
    print("[forked.]")
    while True:
        yield sleep(1)
        print("[.]")


def answer():
    print("{forked.}")
    yield sleep(1)
    print("{finished}")
    return 42


def main():
    yield fork(ticker)
    print("hello,")
    yield sleep(3)
    print("world")

    try:
        html = yield fetch(URL)
    except NetworkError as exc:
        html = f"<fetch failed: {exc}>"
    print(html)

    job = yield fork(answer)
    r = yield job.wait()
    print(r)
    # a Job delivers its value once
    r = yield job.wait()
    print(r)
    return r


main
