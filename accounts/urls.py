from django.urls import path

from . import views


urlpatterns = [
    path("auth/signup/", views.SignUpView.as_view(), name="auth-signup"),
    path("auth/signin/", views.SignInView.as_view(), name="auth-signin"),
    path("auth/signout/", views.SignOutView.as_view(), name="auth-signout"),
    path("auth/me/", views.MeView.as_view(), name="auth-me"),
    path("account/", views.AccountView.as_view(), name="account"),
    path("account/profile/", views.ProfileView.as_view(), name="account-profile"),
    path("account/settings/", views.UserSettingsView.as_view(), name="account-settings"),
]
