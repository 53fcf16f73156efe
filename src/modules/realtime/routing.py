from django.urls import re_path

from modules.realtime.consumers import DispatchConsumer

websocket_urlpatterns = [
    re_path(r"^ws/?$", DispatchConsumer.as_asgi()),
]
