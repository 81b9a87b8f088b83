#!/usr/bin/env python3
"""
Show or change the vendor verification feature flag.
Usage:
    python tools/set_policy.py                       # show
    python tools/set_policy.py --mode non-blocking
    python tools/set_policy.py --method community
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ft.adapters.store import build_store
from ft.core.config import load_config
from ft.core.errors import ValidationError
from ft.domain.policy import VerificationPolicyProvider

def main() -> int:
    parser = argparse.ArgumentParser(description="Vendor verification feature flag")
    parser.add_argument("--config", default="config.json")
    parser.add_argument("--mode", choices=["blocking", "non-blocking"])
    parser.add_argument("--method", choices=["photo", "community", "both"])
    args = parser.parse_args()

    provider = VerificationPolicyProvider(build_store(load_config(Path(args.config))))
    if args.mode or args.method:
        try:
            policy = provider.set_policy(mode=args.mode, method=args.method)
        except ValidationError as e:
            print(f"Invalid value: {e.reason}")
            return 2
    else:
        policy = provider.read()
    print(f"mode={policy.mode.value} method={policy.method.value}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
