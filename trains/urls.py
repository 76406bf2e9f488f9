"""
URL configuration for trains app.
"""
from django.urls import path
from .views import TrainSearchView, TodayTrainsView, TrainListCreateView, TrainDetailView

urlpatterns = [
    path('', TrainListCreateView.as_view(), name='train_list'),
    path('search/', TrainSearchView.as_view(), name='train_search'),
    path('today/', TodayTrainsView.as_view(), name='train_today'),
    path('<uuid:train_id>/', TrainDetailView.as_view(), name='train_detail'),
]
