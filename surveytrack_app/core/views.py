from django.http import HttpResponse


def healthz(request):
    """Lightweight health endpoint for load balancers and readiness probes.
    Returns 200 OK without touching storage.
    """
    return HttpResponse("ok", content_type="text/plain")
