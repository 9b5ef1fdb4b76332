"""Scenario Chat — dev launcher. Starts the API server in watch mode."""

import argparse
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def seed_demo(data_dir: Path) -> None:
    from scenario_chat.config import load_settings
    from scenario_chat.context import build_services
    from scenario_chat.demo import create_demo_data

    services = build_services(load_settings(data_dir=data_dir))
    report = create_demo_data(services.scenarios, services.turns)
    print(f"Demo scenario {report.scenario.title!r} created: {report.scenario.id}")


def main():
    parser = argparse.ArgumentParser(description="Scenario Chat dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Create a demo scenario before starting")
    parser.add_argument("--log-level", default="info",
                        choices=["critical", "error", "warning", "info", "debug"],
                        help="Server log level (default: info)")
    args = parser.parse_args()

    # Build env for the server so it picks up the same data dir
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())

    if args.demo:
        seed_demo(args.data_dir.resolve() if args.data_dir else ROOT / "data")

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "scenario_chat.app:get_app", "--factory",
         "--reload", "--host", HOST, "--port", BACKEND_PORT,
         "--log-level", args.log_level],
        cwd=ROOT, env=env,
    )
    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        proc.terminate()
        proc.wait()


if __name__ == "__main__":
    main()
