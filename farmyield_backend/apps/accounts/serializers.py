# apps/accounts/serializers.py

from rest_framework import serializers
from .models import WalletUser, Badge


class BadgeSerializer(serializers.ModelSerializer):
    """Serializer for Badge model"""

    badge_type_display = serializers.CharField(source='get_badge_type_display', read_only=True)

    class Meta:
        model = Badge
        fields = ['badge_type', 'badge_type_display', 'earned_at', 'mint_reference']
        read_only_fields = fields


class WalletUserSerializer(serializers.ModelSerializer):
    """Public profile with aggregate stats and badges"""

    badges = BadgeSerializer(many=True, read_only=True)

    class Meta:
        model = WalletUser
        fields = [
            'wallet_address',
            'username',
            'total_reports',
            'verified_reports',
            'total_earned',
            'reputation_score',
            'district',
            'province',
            'badges',
            'joined_at',
            'last_active',
        ]
        read_only_fields = fields


class WalletUserUpdateSerializer(serializers.ModelSerializer):
    """Serializer for profile fields a wallet may edit"""

    class Meta:
        model = WalletUser
        fields = ['username', 'district', 'province']

    def validate_username(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Username cannot be blank')
        return value
