"""Root URL configuration for the Newsroom Moderation API."""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("auth/", include("authentication.urls")),
    path("", include("authentication.user_urls")),
    path("", include("news.urls")),
    path("", include("comments.urls")),
]
