"""
backend : FastAPI application package.

Routers: api/predict.py, api/patients.py, api/records.py, api/health.py
Schemas: schemas/request.py, schemas/response.py
Entry point: main.py → run with `uvicorn backend.main:app --reload`
"""
