from django.urls import path
from . import views

urlpatterns = [
    # Health check
    path("health", views.health, name="health"),

    # Agora token
    path("create-token", views.create_token, name="create_token"),

    # Call signaling pushes
    # Note: Device tokens are written by the app directly to Firestore users/{uid}
    path("incoming-call", views.incoming_call, name="incoming_call"),
    path("call-update", views.call_update, name="call_update"),
]
