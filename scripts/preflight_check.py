#!/usr/bin/env python3
"""
Pre-flight Check Script for Production Deployment
Validates environment variables, plan configuration and application startup
Exits with non-zero code if any check fails
"""

import os
import sys
import tempfile
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def check_required_env_var(name, min_length=None):
    """Check if required environment variable exists and optionally validate length"""
    value = os.environ.get(name, '').strip()

    if not value:
        print(f"❌ ERROR: Required environment variable '{name}' is not set", file=sys.stderr)
        return False

    if min_length and len(value) < min_length:
        print(f"❌ ERROR: Environment variable '{name}' must be at least {min_length} characters (current: {len(value)})", file=sys.stderr)
        return False

    print(f"✅ {name}: Set (length: {len(value)})")
    return True


def check_plan_limits():
    """Check the plan tier table and default tier"""
    from statsor import config
    try:
        plan_limits = config.load_plan_limits()
    except RuntimeError as e:
        print(f"❌ ERROR: {e}", file=sys.stderr)
        return False

    if config.DEFAULT_TIER not in plan_limits:
        print(f"❌ ERROR: Default tier '{config.DEFAULT_TIER}' is not one of {sorted(plan_limits)}", file=sys.stderr)
        return False

    for tier, limits in plan_limits.items():
        shown = ', '.join(f"{k}={'unlimited' if v == config.UNLIMITED else v}" for k, v in limits.items())
        print(f"✅ Plan '{tier}': {shown}")
    return True


def check_data_dir():
    """Check that the data directory is writable"""
    from statsor import config
    data_dir = Path(config.DATA_DIR)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=data_dir):
            pass
    except OSError as e:
        print(f"❌ ERROR: Data directory '{data_dir}' is not writable: {e}", file=sys.stderr)
        return False
    print(f"✅ Data directory: {data_dir.resolve()}")
    return True


def check_app_import():
    """Check if application can be imported and initialized"""
    try:
        from statsor.main import create_app
        create_app()
        print("✅ Application imports and initializes successfully")
        return True
    except Exception as e:
        print(f"❌ ERROR: Application import/initialization failed: {e}", file=sys.stderr)
        return False


def main():
    """Run all pre-flight checks"""
    print("Statsor pre-flight checks")
    print("=" * 50)

    checks = [
        check_required_env_var('SECRET_KEY', min_length=32),
        check_plan_limits(),
        check_data_dir(),
    ]
    if all(checks):
        checks.append(check_app_import())

    if all(checks):
        print("\n✅ All pre-flight checks passed")
        return 0
    print("\n❌ Pre-flight checks failed", file=sys.stderr)
    return 1


if __name__ == '__main__':
    sys.exit(main())
