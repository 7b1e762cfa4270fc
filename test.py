#!/usr/bin/env python3
"""
VODPack Test Runner

Usage:
    python test.py              # Run all tests
    python test.py unit         # Skip tests that need FFmpeg/Bento4
    python test.py integration  # Only tests against the real binaries
    python test.py coverage     # Run with coverage report
    python test.py failed       # Re-run failed tests
    python test.py <module>     # tests/test_<module>.py, or a -k filter
"""

import os
import subprocess
import sys

MODES = {
    "unit": (["-v", "--tb=short", "-m", "not integration"], "[UNIT] Running tests without external tools..."),
    "integration": (["-v", "--tb=short", "-m", "integration"], "[INTEGRATION] Running FFmpeg/Bento4 tests..."),
    "quick": (["-v", "--tb=short", "-m", "not slow"], "[QUICK] Running quick tests (skipping slow)..."),
    "coverage": (
        ["--cov=vodpack", "--cov-report=term-missing", "-v"],
        "[COVERAGE] Running tests with coverage report...",
    ),
    "failed": (["--lf", "-v"], "[RETRY] Re-running failed tests..."),
}


def main():
    os.chdir(os.path.dirname(os.path.abspath(__file__)))

    cmd = [sys.executable, "-m", "pytest", "tests/"]
    args = sys.argv[1:]

    if not args:
        cmd.extend(["-v", "--tb=short"])
        print("[TEST] Running all tests...\n")
    elif args[0] in MODES:
        extra, banner = MODES[args[0]]
        cmd.extend(extra)
        print(banner + "\n")
    else:
        module = args[0]
        test_file = f"tests/test_{module}.py"
        if os.path.exists(test_file):
            cmd = [sys.executable, "-m", "pytest", test_file, "-v", "--tb=short"]
            print(f"[MODULE] Running tests for {module}...\n")
        else:
            cmd.extend(["-v", "--tb=short", "-k", module])
            print(f"[FILTER] Running tests matching '{module}'...\n")

    try:
        result = subprocess.run(cmd)
    except KeyboardInterrupt:
        print("\n\n[ABORT] Tests interrupted by user")
        return 1

    print("\n" + "=" * 60)
    if result.returncode == 0:
        print("[PASS] All tests passed!")
    else:
        print(f"[FAIL] Tests failed (exit code: {result.returncode})")
    print("=" * 60)
    return result.returncode


if __name__ == "__main__":
    sys.exit(main())
