"""
Entry point for running the application with `python -m backend`.

STR-101: Service skeleton
"""
import uvicorn

if __name__ == "__main__":
    uvicorn.run("backend.main:app", host="0.0.0.0", port=8001, reload=True)
