"""
Server entry point: python -m creatorsubs
"""
import os
import sys

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    print(f"[creatorsubs] Server: http://localhost:{port}")
    try:
        uvicorn.run(
            "creatorsubs.main:app",
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            reload=False,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[creatorsubs] Shutting down...")
        sys.exit(0)
