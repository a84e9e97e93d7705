import logging

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Starting table scheduling service...")

    uvicorn.run(
        "tableplan.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
