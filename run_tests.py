#!/usr/bin/env python3
"""
Test runner script for timecourse_toolkit

Runs every tests/test_*.py module on its own, then the whole suite, and
prints a pass/fail summary. Extra arguments are passed through to pytest,
e.g. ``python run_tests.py -k shrinkage``.
"""

import glob
import os
import subprocess
import sys


def discover_test_modules(project_root):
    """Sorted paths of the test modules under tests/"""
    pattern = os.path.join(project_root, "tests", "test_*.py")
    return sorted(os.path.relpath(path, project_root) for path in glob.glob(pattern))


def run_suite(args, description, project_root):
    """Run pytest with ``args`` and return whether it passed"""
    print(f"\n{'='*60}")
    print(f"🧪 {description}")
    print('='*60)

    result = subprocess.run(
        [sys.executable, "-m", "pytest", *args], check=False, cwd=project_root
    )
    passed = result.returncode == 0
    status = "PASSED" if passed else f"FAILED (exit code: {result.returncode})"
    print(f"{'✅' if passed else '❌'} {description} - {status}")
    return passed


def main(extra_args=None):
    """Run each test module, then the complete suite"""
    extra_args = list(extra_args or [])
    project_root = os.path.dirname(os.path.abspath(__file__))

    print("Timecourse Toolkit Test Suite")
    print("="*60)

    modules = discover_test_modules(project_root)
    if not modules:
        print("No test modules found under tests/")
        return 1

    results = []
    for module in modules:
        name = os.path.splitext(os.path.basename(module))[0].replace("test_", "", 1)
        results.append((name, run_suite([module, "-v", "--tb=short", *extra_args], name, project_root)))
    results.append((
        "complete suite",
        run_suite(["tests", "-q", "--tb=short", *extra_args], "Complete Test Suite (Quick)", project_root),
    ))

    print(f"\n{'='*60}")
    print("📊 TEST SUMMARY")
    print('='*60)
    for name, passed in results:
        print(f"{'✅ PASSED' if passed else '❌ FAILED':12} - {name}")

    n_failed = sum(not passed for _, passed in results)
    print(f"\n Overall: {len(results) - n_failed}/{len(results)} test suites passed")
    return 1 if n_failed else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
