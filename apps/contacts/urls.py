from django.urls import path
from . import views

app_name = 'contacts'

urlpatterns = [
    path('persons/', views.persons_view, name='person_list'),
    path('persons/search/', views.person_search_view, name='person_search'),
    path('persons/<uuid:pk>/', views.person_detail_view, name='person_detail'),
    path('persons/<uuid:pk>/extensions/<str:role>/', views.person_extension_view, name='person_extension'),
    path('persons/<uuid:pk>/check-in/', views.member_check_in_view, name='member_check_in'),
    path('persons/<uuid:pk>/interactions/', views.person_interactions_view, name='person_interactions'),
    path('interactions/<uuid:pk>/', views.interaction_detail_view, name='interaction_detail'),
]
