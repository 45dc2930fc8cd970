from django.urls import path

from . import views


urlpatterns = [
    path("images/", views.ImageGenerationListCreateView.as_view(), name="image-list-create"),
    path("images/<int:pk>/", views.ImageGenerationDetailView.as_view(), name="image-detail"),
    path("avatars/", views.AvatarCreateView.as_view(), name="avatar-list-create"),
    path("documents/", views.DocumentConversionListCreateView.as_view(), name="document-list-create"),
    path("news/", views.NewsAnalysisListCreateView.as_view(), name="news-list-create"),
    path("transcriptions/", views.TranscriptionCreateView.as_view(), name="transcription-create"),
    path("usage/", views.ToolUsageListView.as_view(), name="tool-usage"),
]
