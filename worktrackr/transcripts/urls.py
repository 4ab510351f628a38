from django.urls import path
from .views import transcribe_audio, extract_ticket, transcript_list, transcript_detail

urlpatterns = [
    path('transcribe/audio', transcribe_audio, name='transcribe-audio'),
    path('transcribe/extract-ticket', extract_ticket, name='transcribe-extract-ticket'),
    path('transcribe/transcripts', transcript_list, name='transcript-list'),
    path('transcribe/transcripts/<uuid:pk>', transcript_detail, name='transcript-detail'),
]
