# run_server.py
import os, sys, traceback, faulthandler
from pathlib import Path

# write crash logs next to the exe
BASE_DIR = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
LOG_FILE = BASE_DIR / "backend_crash.log"


def main():
    # dump fatal crashes too
    crash_log = open(LOG_FILE, "a", encoding="utf-8")
    faulthandler.enable(crash_log)
    crash_log.write(f"\n--- START --- exe={sys.executable} cwd={os.getcwd()} base_dir={BASE_DIR}\n")
    crash_log.flush()

    try:
        import uvicorn

        # IMPORTANT: import app after crash logging is ready
        from loan_app.core.config import settings
        from main import app

        uvicorn.run(app, host=settings.host, port=settings.port, reload=False, log_level=settings.log_level.lower())

    except Exception:
        err = traceback.format_exc()
        crash_log.write(err + "\n")
        crash_log.flush()
        print(err)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
