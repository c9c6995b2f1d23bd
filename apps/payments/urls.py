from django.urls import path

from . import views

app_name = 'payments'

urlpatterns = [
    path('intents/', views.create_payment_intent, name='create-intent'),
    path('confirm/', views.confirm_payment_view, name='confirm'),
    path('webhook/', views.payment_webhook, name='webhook'),
    path('mine/', views.my_payments, name='my-payments'),
]
