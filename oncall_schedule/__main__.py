# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Run the service with uvicorn: ``python -m oncall_schedule``."""

import uvicorn

from oncall_schedule.core.config import settings


def main() -> None:
    uvicorn.run(
        "oncall_schedule.main:app",
        host=settings.SERVER_ADDRESS,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
