from __future__ import annotations

import os
import random
import time

from fastapi import FastAPI, Response


HEALTH = int(os.getenv("HEALTH", "100"))
FAIL_RATE = float(os.getenv("FAIL_RATE", "0"))  # 0..1

app = FastAPI(title="Example backend")

APP_STATE = {"health": HEALTH}


@app.get("/health")
def health() -> Response:
    # Optional fault injection to demo downpage failover.
    if FAIL_RATE > 0 and random.random() < FAIL_RATE:
        time.sleep(3)
    score = APP_STATE["health"]
    return Response(content=f"Health: {score}\n", media_type="text/plain", headers={"X-Health": str(score)})


@app.post("/simulate/health/{score}")
def set_health(score: int) -> dict[str, int]:
    APP_STATE["health"] = max(0, score)
    return {"health": APP_STATE["health"]}
