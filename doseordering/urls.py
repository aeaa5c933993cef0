from django.urls import path
from .views import OrderExportView, OrderRecommendationView

urlpatterns = [
    path('orders/recommendations/', OrderRecommendationView.as_view(), name='order-recommendations'),
    path('orders/recommendations/export', OrderExportView.as_view(), name='order-export'),
]
