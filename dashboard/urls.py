from django.urls import path

from . import views


urlpatterns = [
    path("metrics/", views.MetricsView.as_view(), name="admin-metrics"),
    path("flags/", views.FeatureFlagListView.as_view(), name="admin-flags"),
    path("flags/<slug:key>/", views.FeatureFlagDetailView.as_view(), name="admin-flag-detail"),
    path("insights/", views.InsightsView.as_view(), name="admin-insights"),
    path("insights/actionable/", views.ActionableInsightsView.as_view(), name="admin-insights-actionable"),
]
