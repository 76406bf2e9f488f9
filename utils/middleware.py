"""
Custom middleware for API request logging.
"""
import logging
import time

from utils.mongo import log_api_request

logger = logging.getLogger(__name__)


class APILoggingMiddleware:
    """
    Logs train search and booking requests to MongoDB.
    """

    LOGGED_PREFIXES = ['/api/trains/search/', '/api/bookings/']

    def __init__(self, get_response):
        self.get_response = get_response

    def should_log(self, request):
        return any(request.path.startswith(prefix) for prefix in self.LOGGED_PREFIXES)

    def __call__(self, request):
        if not self.should_log(request):
            return self.get_response(request)

        start_time = time.perf_counter()
        response = self.get_response(request)
        execution_time_ms = (time.perf_counter() - start_time) * 1000

        user = getattr(request, 'user', None)
        user_id = user.id if user is not None and user.is_authenticated else None

        # Query string only; booking bodies carry passenger details.
        request_params = {}
        if request.method == 'GET':
            request_params = {
                k: v[0] if len(v) == 1 else v
                for k, v in request.GET.lists()
            }
            for key in ('source', 'destination'):
                if isinstance(request_params.get(key), str):
                    request_params[key] = request_params[key].strip().title()

        results_count = None
        data = getattr(response, 'data', None)
        if isinstance(data, dict) and isinstance(data.get('results'), list):
            results_count = len(data['results'])
        elif isinstance(data, list):
            results_count = len(data)

        try:
            log_api_request(
                endpoint=request.path,
                method=request.method,
                user_id=user_id,
                request_params=request_params,
                response_status=response.status_code,
                execution_time_ms=round(execution_time_ms, 2),
                results_count=results_count
            )
        except Exception:
            # Don't let logging errors affect the response
            logger.exception("Error logging API request")
        return response
