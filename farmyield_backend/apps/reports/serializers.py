# apps/reports/serializers.py

from decimal import Decimal
from rest_framework import serializers
from .models import Report, Vote


class CamelCaseAliasMixin:
    """
    Accept the mobile client's camelCase keys alongside snake_case.
    """
    ALIASES = {}

    def to_internal_value(self, data):
        if hasattr(data, 'dict'):
            data = data.dict()
        else:
            data = dict(data)
        for alias, name in self.ALIASES.items():
            if alias in data and name not in data:
                data[name] = data.pop(alias)
        return super().to_internal_value(data)


class ReportSubmitSerializer(CamelCaseAliasMixin, serializers.Serializer):
    """Serializer for report submission input"""

    ALIASES = {
        'cropType': 'crop_type',
        'soilType': 'soil_type',
        'harvestDate': 'harvest_date',
        'marketPrice': 'market_price',
    }

    crop_type = serializers.CharField(max_length=50)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=Decimal('0.001'))
    unit = serializers.CharField(max_length=20, required=False, default='kg')
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    district = serializers.CharField(max_length=100, required=False, allow_blank=True)
    province = serializers.CharField(max_length=100, required=False, allow_blank=True)
    village = serializers.CharField(max_length=100, required=False, allow_blank=True)
    images = serializers.ListField(
        child=serializers.JSONField(),
        required=False,
        max_length=5,
        help_text='IPFS CIDs or {"ipfs_hash", "url"} objects'
    )
    soil_type = serializers.CharField(max_length=50, required=False, allow_blank=True)
    irrigation = serializers.CharField(max_length=50, required=False, allow_blank=True)
    harvest_date = serializers.DateField(required=False, allow_null=True)
    market_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=Decimal('0')
    )

    def validate_crop_type(self, value):
        value = value.strip().lower()
        if not value:
            raise serializers.ValidationError('Crop type cannot be blank')
        return value


class VoteSerializer(CamelCaseAliasMixin, serializers.Serializer):
    """Serializer for casting a vote"""

    ALIASES = {
        'voteType': 'vote',
        'txSignature': 'tx_signature',
    }

    vote = serializers.ChoiceField(choices=Vote.DECISION_CHOICES)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    tx_signature = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)


class ReportSerializer(serializers.ModelSerializer):
    """Full report representation"""

    quantity = serializers.SerializerMethodField()
    location = serializers.SerializerMethodField()
    metadata = serializers.SerializerMethodField()
    votes = serializers.SerializerMethodField()
    blockchain = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            'id',
            'report_id',
            'owner_wallet',
            'crop_type',
            'quantity',
            'location',
            'images',
            'metadata',
            'status',
            'votes',
            'voters',
            'verified_by',
            'verified_at',
            'rejected_at',
            'rejection_reason',
            'blockchain',
            'metadata_uri',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_quantity(self, obj):
        return {'value': obj.quantity_value, 'unit': obj.quantity_unit}

    def get_location(self, obj):
        return {
            'latitude': obj.latitude,
            'longitude': obj.longitude,
            'district': obj.district,
            'province': obj.province,
            'village': obj.village,
        }

    def get_metadata(self, obj):
        return {
            'soil_type': obj.soil_type,
            'irrigation': obj.irrigation,
            'harvest_date': obj.harvest_date,
            'market_price': obj.market_price,
        }

    def get_votes(self, obj):
        return obj.vote_counts

    def get_blockchain(self, obj):
        return {
            'mint_tx_signature': obj.mint_tx_signature,
            'tree_address': obj.tree_address,
            'reward_tx_signature': obj.reward_tx_signature,
            'reward_amount': obj.reward_amount,
        }


class ReportSummarySerializer(serializers.ModelSerializer):
    """Compact representation returned after submit and vote"""

    votes = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = ['id', 'report_id', 'crop_type', 'status', 'votes', 'created_at']
        read_only_fields = fields

    def get_votes(self, obj):
        return obj.vote_counts
