"""Run the API locally with auto-reload.

Reads HOST / PORT from the environment (defaults 127.0.0.1:8000).
"""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "bughunter.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
