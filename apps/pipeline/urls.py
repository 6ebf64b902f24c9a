from django.urls import path
from . import views

app_name = 'pipeline'

urlpatterns = [
    path('persons/<uuid:pk>/extensions/<str:role>/transition/', views.transition_view, name='transition'),
    path('persons/<uuid:pk>/appointment/', views.appointment_view, name='appointment'),
]
