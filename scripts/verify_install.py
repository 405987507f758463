#!/usr/bin/env python
"""
Auto Walls - Installation Verification Script

Run this script to verify all dependencies are correctly installed.
"""

import sys
from pathlib import Path

# Add project root to path for the autowalls package
sys.path.insert(0, str(Path(__file__).parent.parent))


def check_package(name: str, import_name: str = None, version_attr: str = "__version__") -> tuple[bool, str]:
    """Check if a package is installed and return version."""
    import_name = import_name or name
    try:
        module = __import__(import_name)
        version = getattr(module, version_attr, "unknown")
        return True, str(version)
    except ImportError as e:
        return False, str(e)


def check_constants() -> tuple[bool, str]:
    """Check if constants module loads correctly."""
    try:
        from autowalls.constants import (
            PIPELINE_KMEANS_K,
            PIPELINE_WALL_THRESHOLD,
            DEFAULT_GRID_SIZE,
        )
        return True, f"loaded ({PIPELINE_KMEANS_K=}, {PIPELINE_WALL_THRESHOLD=}, {DEFAULT_GRID_SIZE=})"
    except ImportError as e:
        return False, str(e)


def check_settings() -> tuple[bool, str]:
    """Check if settings.yaml loads and validates."""
    try:
        from autowalls.config import DEFAULT_SETTINGS_PATH, load_config
        if not DEFAULT_SETTINGS_PATH.exists():
            return False, "settings.yaml not found"
        config = load_config()
        return True, f"edge method {config.edge_method}, k={config.kmeans.k}"
    except Exception as e:
        return False, str(e)


def main():
    print("=" * 60)
    print("Auto Walls - Installation Verification")
    print("=" * 60)
    print()

    results = []

    # Core packages
    print("Core Dependencies:")
    print("-" * 40)

    packages = [
        ("numpy", "numpy", "__version__"),
        ("opencv", "cv2", "__version__"),
        ("shapely", "shapely", "__version__"),
        ("pillow", "PIL", "__version__"),
        ("pyyaml", "yaml", "__version__"),
    ]

    for name, import_name, version_attr in packages:
        ok, info = check_package(name, import_name, version_attr)
        status = "PASS" if ok else "FAIL"
        print(f"  {name:25} [{status}] {info}")
        results.append((name, ok))

    print()
    print("Configuration:")
    print("-" * 40)

    ok, info = check_constants()
    status = "PASS" if ok else "FAIL"
    print(f"  {'constants.py':25} [{status}] {info}")
    results.append(("constants", ok))

    ok, info = check_settings()
    status = "PASS" if ok else "FAIL"
    print(f"  {'settings.yaml':25} [{status}] {info}")
    results.append(("settings", ok))

    print()
    print("=" * 60)

    # Summary
    passed = sum(1 for _, ok in results if ok)
    total = len(results)

    if passed == total:
        print(f"ALL CHECKS PASSED ({passed}/{total})")
        print("Environment is ready for wall detection.")
        return 0
    else:
        failed = [name for name, ok in results if not ok]
        print(f"SOME CHECKS FAILED ({passed}/{total})")
        print(f"Failed: {', '.join(failed)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
