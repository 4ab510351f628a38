from rest_framework import serializers

from .models import Transcript, AIExtraction


class TranscriptSerializer(serializers.ModelSerializer):
    created_by_email = serializers.CharField(source='user.email', read_only=True, default=None)

    class Meta:
        model = Transcript
        fields = ['id', 'organisation_id', 'user_id', 'created_by_email', 'filename', 'duration_seconds',
                  'text', 'segments', 'language', 'created_at']
        read_only_fields = fields


class ExtractTicketSerializer(serializers.Serializer):
    transcript_id = serializers.UUIDField(required=False, allow_null=True)
    transcript_text = serializers.CharField(min_length=10, required=False, trim_whitespace=True)

    def validate(self, attrs):
        if not attrs.get('transcript_id') and not attrs.get('transcript_text'):
            raise serializers.ValidationError('transcript_text or transcript_id is required')
        return attrs


class AIExtractionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AIExtraction
        fields = ['id', 'transcript_id', 'extracted_data', 'confidence_score', 'matched_contact_id', 'created_at']
        read_only_fields = fields
