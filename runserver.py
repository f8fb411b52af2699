#project.runserver.py

import os
import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "credenciales.main:create_app",
        factory=True,
        host=os.environ.get("API_HOST", "127.0.0.1"),
        port=int(os.environ.get("API_PORT", 3001)),
        reload=os.environ.get("MODE", "development") == "development",
    )
