from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Learning events
lesson_completions_total = Counter(
    'lesson_completions_total',
    'Lesson completion toggles',
    ['completed']
)
certificates_issued_total = Counter('certificates_issued_total', 'Certificates issued')
notifications_created_total = Counter(
    'notifications_created_total',
    'Notifications written',
    ['type']
)
notification_failures_total = Counter(
    'notification_failures_total',
    'Notification writes that failed and were dropped'
)

def metrics_endpoint():
    """Endpoint for Prometheus metrics"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
