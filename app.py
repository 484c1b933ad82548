"""Application entrypoint to run the GoalPilot API."""

from __future__ import annotations

import uvicorn

from goalpilot.app import app

__all__ = ["app"]


BACKEND_HOST = "0.0.0.0"
BACKEND_PORT = 8000


def main() -> None:
    try:
        print(f"⚙️  Starting GoalPilot API at http://localhost:{BACKEND_PORT}")
        uvicorn.run(
            "goalpilot.app:app",
            host=BACKEND_HOST,
            port=BACKEND_PORT,
            reload=True,
        )
    except KeyboardInterrupt:
        print("\n🛑 Shutdown requested by user.")
    finally:
        print("✨ All services stopped.")


if __name__ == "__main__":
    main()
