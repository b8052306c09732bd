#!/usr/bin/env python3
"""
Start the deep & dark web trends backend
"""
import os
import sys

import uvicorn


if __name__ == "__main__":
    host = os.getenv("HOST", "localhost")
    port = int(os.getenv("PORT", "8000"))

    print("Starting ddw-trends backend...")
    print(f"API:  http://{host}:{port}/api")
    print(f"Docs: http://{host}:{port}/api/docs")
    print("Press Ctrl+C to stop the server")
    print()

    try:
        uvicorn.run(
            "ddw_trends.backend.app:app",
            host=host,
            port=port,
            reload=False,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\nServer stopped")
        sys.exit(0)
