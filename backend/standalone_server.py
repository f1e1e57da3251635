import os

from postgirl.main import app

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("POSTGIRL_HOST", "127.0.0.1")
    port = int(os.getenv("POSTGIRL_PORT", "4010"))
    uvicorn.run(app, host=host, port=port, log_level="info")
