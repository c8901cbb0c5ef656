import os
from fastapi import FastAPI, Request
from .routes import router
from .core import build_manager, init_metrics, shutdown_connections
import logging
from pythonjsonlogger import jsonlogger

# setup structured logging
logger = logging.getLogger('microblog')
handler = logging.StreamHandler()
formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(logging.INFO)

app = FastAPI(title="Microblog API", version="0.1.0")

app.include_router(router)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
    response = await call_next(request)
    logger.info({'msg': 'request_end', 'status': response.status_code})
    return response


@app.on_event("startup")
async def startup():
    # Metrics are best effort; storage is required
    try:
        init_metrics()
    except Exception as e:
        logger.warning({'msg': 'metrics_init_failed', 'error': str(e)})
    if getattr(app.state, 'manager', None) is None:
        app.state.manager = await build_manager()


@app.on_event("shutdown")
async def shutdown():
    await shutdown_connections()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv('HOST', '0.0.0.0'), port=int(os.getenv('PORT', '8080')))
