import os
import uvicorn

if __name__ == "__main__":
    host = os.environ.get("SLICERLENS_HOST", "127.0.0.1")
    port = int(os.environ.get("SLICERLENS_PORT", "8000"))

    # Start Uvicorn programmatically
    print(f"🚀 Starting SlicerLens on http://{host}:{port} ...")
    # Reload is enabled for dev experience
    uvicorn.run("slicerlens.main:app", host=host, port=port, reload=True)
