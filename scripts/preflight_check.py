#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    # Set dummy env vars to avoid KeyErrors during config load if any
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import phoneauth.main
    print("Import phoneauth.main: OK")

    import phoneauth.queue.jobs
    print("Import phoneauth.queue.jobs: OK")

    from phoneauth.settings import settings
    missing = [k for k in ("WORKOS_API_KEY", "WORKOS_CLIENT_ID") if not getattr(settings, k, "")]
    if missing:
        print(f"[WARN] not configured: {', '.join(missing)}")
    print(f"SMS email domain: {settings.SMS_EMAIL_DOMAIN}")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
