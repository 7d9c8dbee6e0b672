"""HTTP接口模块"""

from .health_handler import (
    HealthEndpoint, HealthResponse, build_endpoint, create_app, error_payload,
    request_tracking_middleware, status_code_for
)

__all__ = ['HealthEndpoint', 'HealthResponse', 'build_endpoint', 'create_app', 'error_payload',
           'request_tracking_middleware', 'status_code_for']
