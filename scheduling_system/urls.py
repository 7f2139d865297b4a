# scheduling_system/urls.py
#
# Purpose:
# - Project URL router.
# - Django admin at /admin/, the booking JSON API under /api/.
#
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("booking.urls")),
]

# Uploaded documents (development only)
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
