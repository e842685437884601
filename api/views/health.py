from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..utils import utc_now_iso


@csrf_exempt
def health(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    return JsonResponse({
        "status": "OK",
        "timestamp": utc_now_iso(),
    })
