from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "trialinsight.api.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
