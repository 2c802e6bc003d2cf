#!/usr/bin/env python3
"""
Fake stdio JSON-RPC server for channel and HTTP tests.

Reads Content-Length framed requests on stdin and answers on stdout.
Behaviour is picked by the request method:

  echo        reply with result = params
  delay       reply with result = params after params["seconds"]
  notify      send a notification first, then reply
  garbage     send a header block without Content-Length and a bad JSON
              frame, then reply
  split       write the reply one byte at a time
  nan         reply with result = NaN (non-standard JSON constant)
  deep        send a frame nested too deeply to parse, then reply
  numeric_id  reply with the id converted to an int
  stderr      write params["text"] to stderr, then reply
  silent      never reply
  exit        exit immediately with params["code"] (default 3)
  (other)     JSON-RPC "method not found" error
"""

import json
import sys
import threading
import time

_write_lock = threading.Lock()


def write_raw(data: bytes) -> None:
    with _write_lock:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def frame(message) -> bytes:
    body = json.dumps(message).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body


def reply(request_id, result) -> None:
    write_raw(frame({"jsonrpc": "2.0", "id": request_id, "result": result}))


def read_message():
    length = None
    while True:
        line = sys.stdin.buffer.readline()
        if not line:
            return None
        if line in (b"\r\n", b"\n"):
            break
        name, _, value = line.decode("ascii").partition(":")
        if name.strip().lower() == "content-length":
            length = int(value.strip())
    body = sys.stdin.buffer.read(length)
    return json.loads(body)


def delayed_reply(request_id, params) -> None:
    time.sleep(params.get("seconds", 0))
    reply(request_id, params)


def handle(message) -> None:
    method = message.get("method")
    request_id = message.get("id")
    params = message.get("params") or {}

    if method == "echo":
        reply(request_id, params)
    elif method == "delay":
        threading.Thread(target=delayed_reply, args=(request_id, params), daemon=True).start()
    elif method == "notify":
        write_raw(frame({"jsonrpc": "2.0", "method": "notifications/message", "params": params}))
        reply(request_id, params)
    elif method == "garbage":
        write_raw(b"X-Junk: nothing useful\r\n\r\n")
        write_raw(b"Content-Length: 5\r\n\r\n{oops")
        reply(request_id, params)
    elif method == "nan":
        write_raw(frame({"jsonrpc": "2.0", "id": request_id, "result": float("nan")}))
    elif method == "deep":
        nested = b"[" * 200000 + b"]" * 200000
        write_raw(f"Content-Length: {len(nested)}\r\n\r\n".encode("ascii") + nested)
        reply(request_id, params)
    elif method == "split":
        for byte in frame({"jsonrpc": "2.0", "id": request_id, "result": params}):
            write_raw(bytes([byte]))
    elif method == "numeric_id":
        reply(int(request_id), params)
    elif method == "stderr":
        sys.stderr.write(params.get("text", ""))
        sys.stderr.flush()
        reply(request_id, params)
    elif method == "silent":
        pass
    elif method == "exit":
        sys.stdout.buffer.flush()
        sys.exit(params.get("code", 3))
    else:
        write_raw(frame({
            "jsonrpc": "2.0",
            "id": request_id,
            "error": {"code": -32601, "message": f"Method not found: {method}"},
        }))


def main() -> None:
    while True:
        message = read_message()
        if message is None:
            return
        handle(message)


if __name__ == "__main__":
    main()
