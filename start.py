#!/usr/bin/env python3
"""Launch the Loreline backend and wait until it answers on /api/health."""

from __future__ import annotations

import argparse
import os
import signal
import socket
import subprocess
import sys
import time
import urllib.error
import urllib.request
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent
BACKEND_DIR = ROOT_DIR / "backend"


def first_free_port(host: str, start_port: int) -> int:
    port = start_port
    while True:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            if sock.connect_ex((host, port)) != 0:
                return port
        port += 1


def wait_until_healthy(base_url: str, timeout_seconds: float = 30) -> bool:
    deadline = time.time() + timeout_seconds
    while time.time() < deadline:
        try:
            with urllib.request.urlopen(f"{base_url}/api/health", timeout=2) as response:
                if response.status == 200:
                    return True
        except (urllib.error.URLError, TimeoutError):
            time.sleep(0.5)
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the Loreline story bible API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=None, help="defaults to the first free port from 8000")
    parser.add_argument("--config", help="YAML settings file (sets LORELINE_CONFIG)")
    parser.add_argument("--reload", action="store_true", help="restart on source changes")
    args = parser.parse_args()

    port = args.port or first_free_port(args.host, 8000)
    env = os.environ.copy()
    if args.config:
        env["LORELINE_CONFIG"] = str(Path(args.config).resolve())

    cmd = [sys.executable, "-m", "uvicorn", "main:app", "--host", args.host, "--port", str(port)]
    if args.reload:
        cmd.append("--reload")
    proc = subprocess.Popen(cmd, cwd=BACKEND_DIR, env=env)

    def handle_signal(_signum: int, _frame: object) -> None:
        raise KeyboardInterrupt

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        base_url = f"http://{args.host}:{port}"
        if not wait_until_healthy(base_url):
            print("[ERROR] backend did not become ready in time", file=sys.stderr)
            return 1
        print(f"[loreline] API ready: {base_url}/docs")
        return proc.wait()
    except KeyboardInterrupt:
        return 0
    finally:
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=8)
            except subprocess.TimeoutExpired:
                proc.kill()


if __name__ == "__main__":
    raise SystemExit(main())
