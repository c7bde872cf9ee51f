"""Request and vendor call timing"""

import time
import functools
from typing import Callable, Dict, Any, List
import structlog
from datetime import datetime
import threading
from collections import deque

logger = structlog.get_logger(__name__)

class PerformanceMonitor:
    """
    Track API response times and outbound vendor calls

    Image generation routinely takes tens of seconds, so vendor calls get
    their own threshold instead of the request one.
    """

    def __init__(self, request_threshold_seconds: float = 5.0, vendor_threshold_seconds: float = 60.0):
        self.request_threshold = request_threshold_seconds
        self.vendor_threshold = vendor_threshold_seconds
        self.recent_requests = deque(maxlen=1000)
        self.vendors: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.totals = {'requests': 0, 'slow_requests': 0, 'errors': 0, 'response_time': 0.0}

    def record_request(self, endpoint: str, method: str, response_time: float, status_code: int):
        slow = response_time > self.request_threshold

        with self._lock:
            self.totals['requests'] += 1
            self.totals['response_time'] += response_time
            if slow:
                self.totals['slow_requests'] += 1
            if status_code >= 500:
                self.totals['errors'] += 1
            self.recent_requests.append((endpoint, response_time))

        if slow:
            logger.warning("Slow request detected",
                         endpoint=endpoint,
                         method=method,
                         response_time=round(response_time, 3),
                         threshold=self.request_threshold)

    def record_vendor_call(self, vendor: str, elapsed: float, ok: bool):
        with self._lock:
            stats = self.vendors.setdefault(vendor, {'calls': 0, 'failures': 0, 'total_time': 0.0, 'max_time': 0.0})
            stats['calls'] += 1
            stats['total_time'] += elapsed
            stats['max_time'] = max(stats['max_time'], elapsed)
            if not ok:
                stats['failures'] += 1

        if elapsed > self.vendor_threshold:
            logger.warning("Slow vendor call", vendor=vendor, elapsed=round(elapsed, 3))

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            total = self.totals['requests']
            if total == 0:
                return {'status': 'no requests yet'}

            return {
                'total_requests': total,
                'average_response_time': round(self.totals['response_time'] / total, 3),
                'slow_requests': self.totals['slow_requests'],
                'error_rate': round((self.totals['errors'] / total) * 100, 2),
                'alert_threshold': self.request_threshold,
            }

    def get_endpoint_breakdown(self) -> List[Dict]:
        """Average time per endpoint over recent requests, slowest first"""
        with self._lock:
            stats = {}
            for endpoint, response_time in self.recent_requests:
                entry = stats.setdefault(endpoint, [0, 0.0])
                entry[0] += 1
                entry[1] += response_time

        breakdown = [
            {'endpoint': endpoint, 'average_time': round(total / count, 3), 'request_count': count}
            for endpoint, (count, total) in stats.items()
        ]
        return sorted(breakdown, key=lambda x: x['average_time'], reverse=True)

    def get_vendor_breakdown(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {
                vendor: {
                    'calls': s['calls'],
                    'failures': s['failures'],
                    'average_time': round(s['total_time'] / s['calls'], 3),
                    'max_time': round(s['max_time'], 3),
                }
                for vendor, s in self.vendors.items()
            }

# Global monitor instance
monitor = PerformanceMonitor()

def track_vendor(vendor: str) -> Callable:
    """Decorator timing a call to an outside service; exceptions count as failures"""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            ok = False
            try:
                result = func(*args, **kwargs)
                ok = True
                return result
            finally:
                monitor.record_vendor_call(vendor, time.time() - start_time, ok)
        return wrapper
    return decorator

def add_performance_monitoring(app):
    """Time every request and expose it as X-Response-Time"""
    from flask import request, g

    @app.before_request
    def before_request():
        g.start_time = time.time()

    @app.after_request
    def after_request(response):
        if hasattr(g, 'start_time'):
            response_time = time.time() - g.start_time

            monitor.record_request(
                endpoint=request.endpoint or request.path,
                method=request.method,
                response_time=response_time,
                status_code=response.status_code
            )

            response.headers['X-Response-Time'] = f"{response_time:.3f}s"

        return response

def get_performance_report() -> Dict[str, Any]:
    return {
        'metrics': monitor.get_metrics(),
        'endpoints': monitor.get_endpoint_breakdown(),
        'vendors': monitor.get_vendor_breakdown(),
        'timestamp': datetime.utcnow().isoformat()
    }
