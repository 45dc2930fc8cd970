from django.urls import path

from . import views


urlpatterns = [
    path("conversations/", views.ConversationListCreateView.as_view(), name="conversation-list-create"),
    path("conversations/history/", views.ConversationHistoryView.as_view(), name="conversation-history"),
    path("conversations/<int:pk>/", views.ConversationDetailView.as_view(), name="conversation-detail"),
    path("conversations/<int:pk>/messages/", views.MessageListCreateView.as_view(), name="message-list-create"),
    path(
        "conversations/<int:pk>/messages/<int:message_id>/feedback/",
        views.MessageFeedbackView.as_view(),
        name="message-feedback",
    ),
    path("guest/chat/", views.GuestChatView.as_view(), name="guest-chat"),
]
