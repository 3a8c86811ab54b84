from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.errors import CarpoolError
from .database import database
from .routers import carpools, drivers, requests, users

app = FastAPI(title=settings.APP_TITLE)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

database.init_db()

app.include_router(users.router)
app.include_router(drivers.router)
app.include_router(carpools.router)
app.include_router(requests.router)


@app.exception_handler(CarpoolError)
def carpool_error_handler(request: Request, exc: CarpoolError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/")
def root():
    return {"status": "Campus Carpool API running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
