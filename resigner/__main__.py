"""Run the re-signing service: python3 -m resigner"""

import uvicorn

from resigner.config import settings


def main() -> None:
    uvicorn.run("resigner.api.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
