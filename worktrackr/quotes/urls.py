from django.urls import path
from .views import (
    quote_list_create, quote_stats, quote_detail, quote_line_items, quote_accept, quote_decline,
    quote_convert_to_job, quote_duplicate, quote_pdf, quote_send, quote_schedule_work,
    quote_create_invoice, quote_mark_accepted, quote_mark_declined, quote_ai_generate,
    quote_ai_context_preview
)
from .template_views import (
    quote_template_list_create, quote_template_sectors, quote_template_detail, quote_template_activate
)

urlpatterns = [
    path('quotes', quote_list_create, name='quote-list-create'),
    path('quotes/stats', quote_stats, name='quote-stats'),
    path('quotes/ai-generate', quote_ai_generate, name='quote-ai-generate'),
    path('quotes/ai-context-preview', quote_ai_context_preview, name='quote-ai-context-preview'),
    path('quotes/<uuid:pk>/line-items', quote_line_items, name='quote-line-items'),
    path('quotes/<uuid:pk>/accept', quote_accept, name='quote-accept'),
    path('quotes/<uuid:pk>/decline', quote_decline, name='quote-decline'),
    path('quotes/<uuid:pk>/convert-to-job', quote_convert_to_job, name='quote-convert-to-job'),
    path('quotes/<uuid:pk>/duplicate', quote_duplicate, name='quote-duplicate'),
    path('quotes/<uuid:pk>/send', quote_send, name='quote-send'),
    path('quotes/<uuid:pk>/schedule-work', quote_schedule_work, name='quote-schedule-work'),
    path('quotes/<uuid:pk>/create-invoice', quote_create_invoice, name='quote-create-invoice'),
    path('quotes/<uuid:pk>/mark-accepted', quote_mark_accepted, name='quote-mark-accepted'),
    path('quotes/<uuid:pk>/mark-declined', quote_mark_declined, name='quote-mark-declined'),
    path('quotes/<str:ref>/pdf', quote_pdf, name='quote-pdf'),
    path('quotes/<str:ref>', quote_detail, name='quote-detail'),
    path('quote-templates', quote_template_list_create, name='quote-template-list-create'),
    path('quote-templates/sectors', quote_template_sectors, name='quote-template-sectors'),
    path('quote-templates/<uuid:pk>', quote_template_detail, name='quote-template-detail'),
    path('quote-templates/<uuid:pk>/activate', quote_template_activate, name='quote-template-activate'),
]
