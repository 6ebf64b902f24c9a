from django.contrib import admin
from django.urls import path, include

# Main URL Configuration
# Routes all requests to appropriate apps

urlpatterns = [

    path('admin/', admin.site.urls),
    path('api/', include('apps.contacts.urls')),
    path('api/', include('apps.pipeline.urls')),
    path('api/', include('apps.network.urls')),

]
