#!/usr/bin/env python3
import datetime
import json
import subprocess
import sys
from pathlib import Path
from typing import TypedDict

# --- Types ---


class GateResult(TypedDict):
    status: str  # "pass" | "fail"
    exit_code: int
    stdout: str
    stderr: str
    command: list[str]


class GatesReport(TypedDict):
    timestamp_utc: str
    overall_status: str  # "pass" | "fail"
    gates: dict[str, GateResult]


# --- Config ---

ARTIFACTS_DIR = Path("artifacts")

GATES: dict[str, list[str]] = {
    "lint": [sys.executable, "-m", "ruff", "check", "pagetrack", "tests"],
    "format": [sys.executable, "-m", "ruff", "format", "--check", "pagetrack", "tests"],
    "types": [sys.executable, "-m", "mypy", "pagetrack"],
    "tests": [
        sys.executable,
        "-m",
        "pytest",
        "-q",
        f"--junitxml={ARTIFACTS_DIR / 'pytest-report.xml'}",
    ],
}


def run_gate(name: str, cmd: list[str]) -> GateResult:
    print(f"[{name}] {' '.join(cmd[1:])} ...", end="", flush=True)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        print(" ERROR")
        return {"status": "fail", "exit_code": -1, "stdout": "", "stderr": str(e), "command": cmd}

    status = "pass" if result.returncode == 0 else "fail"
    print(f" {status.upper()}")
    return {
        "status": status,
        "exit_code": result.returncode,
        "stdout": result.stdout,
        "stderr": result.stderr,
        "command": cmd,
    }


def main(selected: list[str]) -> int:
    unknown = [name for name in selected if name not in GATES]
    if unknown:
        print(f"Unknown gate(s): {', '.join(unknown)}. Choose from: {', '.join(GATES)}")
        return 2

    ARTIFACTS_DIR.mkdir(exist_ok=True)
    results = {name: run_gate(name, GATES[name]) for name in (selected or list(GATES))}
    overall_pass = all(r["status"] == "pass" for r in results.values())

    report: GatesReport = {
        "timestamp_utc": datetime.datetime.now(datetime.UTC).isoformat(),
        "overall_status": "pass" if overall_pass else "fail",
        "gates": results,
    }
    report_path = ARTIFACTS_DIR / "quality_gates_run.json"
    report_path.write_text(json.dumps(report, indent=2))
    print(f"\nReport written to: {report_path}")

    if overall_pass:
        print("All quality gates passed.")
        return 0

    for name, res in results.items():
        if res["status"] == "fail":
            print(f"\n--- {name} FAILED (exit code {res['exit_code']}) ---")
            print((res["stdout"] + res["stderr"]).strip())
    return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
