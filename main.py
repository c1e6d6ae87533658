# Root entrypoint so `uvicorn main:app` works as well as `uvicorn app.main:app`.
from app.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
