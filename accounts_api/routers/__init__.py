"""
FastAPI routers.

Each module exposes an APIRouter that create_app() includes; endpoints only
parse input, run the validators and delegate to a service.
"""
