from django.urls import path
from . import views

app_name = 'network'

urlpatterns = [
    path('persons/<uuid:pk>/relationships/', views.person_relationships_view, name='person_relationships'),
    path('persons/<uuid:pk>/network/', views.person_network_view, name='person_network'),
    path('relationships/', views.relationships_view, name='relationship_create'),
    path('relationships/<uuid:pk>/', views.relationship_detail_view, name='relationship_detail'),
    path('relationships/<uuid:pk>/primary/', views.relationship_primary_view, name='relationship_primary'),
    path('referrals/', views.referrals_view, name='referrals'),
]
