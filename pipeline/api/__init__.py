"""
API module.
Contains the FastAPI application, routes, and error mapping.
"""

from pipeline.api.main import create_app, run, run_receiver, run_sender

__all__ = ["create_app", "run", "run_sender", "run_receiver"]
