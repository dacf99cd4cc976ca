"""
Verify gateway setup is correct

Usage:
    cd backend
    python scripts/verify_setup.py
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv


async def verify_setup() -> bool:
    """Check configuration, schedule data and ledger connectivity"""
    print("Verifying gateway setup...\n")

    errors = []
    warnings = []

    load_dotenv()
    if not Path(".env").exists():
        warnings.append(".env file not found (copy from .env.example)")
    else:
        print("✓ Found .env file")

    try:
        from config import get_settings
        settings = get_settings()
        print("✓ Configuration is valid")
    except Exception as e:
        errors.append(f"Invalid configuration: {e}")
        return _summary(errors, warnings)

    if settings.completions_enabled:
        print(f"✓ Upstream key set, model {settings.openai_model}")
    else:
        warnings.append("OPENAI_API_KEY not set, /api/completions will return 500")

    if settings.api_keys:
        print(f"✓ {len(settings.api_keys)} API key(s) configured, daily limit {settings.daily_limit}")
    else:
        warnings.append("VALID_API_KEYS is empty, every authenticated route will return 401")

    try:
        from services.schedule import ScheduleLookup
        schedule = ScheduleLookup.from_file(settings.schedule_file)
        print(f"✓ Schedule loaded ({len(schedule)} days) from {settings.schedule_file}")
    except (OSError, ValueError, KeyError) as e:
        errors.append(f"Schedule file unusable: {e}")

    try:
        from db.usage_ledger import open_ledger
        ledger = open_ledger(settings)
        try:
            if await ledger.ping():
                print(f"✓ Usage ledger reachable ({settings.ledger_backend})")
            else:
                errors.append(f"Usage ledger unreachable ({settings.ledger_backend})")
        finally:
            await ledger.close()
    except Exception as e:
        errors.append(f"Usage ledger failed to open: {e}")

    return _summary(errors, warnings)


def _summary(errors, warnings) -> bool:
    print("\n" + "="*50)
    if errors:
        print("❌ ERRORS:")
        for err in errors:
            print(f"  - {err}")

    if warnings:
        print("\n⚠️  WARNINGS:")
        for warn in warnings:
            print(f"  - {warn}")

    if not errors and not warnings:
        print("✅ All checks passed! Gateway is ready to run.")
    elif not errors:
        print("\n✅ Setup complete with warnings (non-critical)")
    else:
        print("\n❌ Setup incomplete. Fix errors above.")

    return len(errors) == 0


if __name__ == "__main__":
    success = asyncio.run(verify_setup())
    sys.exit(0 if success else 1)
