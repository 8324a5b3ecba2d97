import zoneinfo

from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

#Dynamically retrieve user model created in settings.py
User=get_user_model()


def validate_timezone_name(value):
    try:
        zoneinfo.ZoneInfo(value)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        raise serializers.ValidationError(f"Unknown timezone '{value}'.")
    return value


class UserRegistrationSerializer(serializers.ModelSerializer):
    password=serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password]
    )

    password2=serializers.CharField(write_only=True,required=True)

    timezone=serializers.CharField(
        max_length=60,
        required=False,
        default='UTC',
        validators=[validate_timezone_name]
    )

    class Meta:
        model=User

        fields=(
            'email',
            'username',
            'password',
            'password2',
            'first_name',
            'last_name',
            'timezone'

        )
        # Ensure these are required inputs
        extra_kwargs = {
            'email': {'required': True},
            'username': {'required': True},
            'first_name': {'required': True},
            'last_name': {'required': True},
        }

    def validate(self, attrs):
        if attrs['password'] != attrs['password2']:
            raise serializers.ValidationError({"password": "Password fields didn't match."})
        attrs['email'] = User.objects.normalize_email(attrs['email'])
        return attrs

    def create(self, validated_data):
        validated_data.pop('password2')

        # Use the custom manager's creation method
        user = User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            username=validated_data['username'],
            first_name=validated_data.get('first_name'),
            last_name=validated_data.get('last_name'),
            timezone=validated_data.get('timezone', 'UTC'),
        )
        return user


class UserDetailsSerializer(serializers.ModelSerializer):
    """
    Serializer for the authenticated user's details. Only the timezone is
    writable: it decides which calendar day counts as "today" for scoring.
    """
    timezone=serializers.CharField(max_length=60,validators=[validate_timezone_name])

    class Meta:
        model=User
        fields=(
            'id',
            'email',
            'username',
            'first_name',
            'last_name',
            'timezone'
        )
        read_only_fields=('id','email','username','first_name','last_name')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Customizes the TokenObtainPairSerializer to use 'email'
    instead of 'username' for the authentication field.
    """
    username_field = 'email'

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        # Add custom claims to the token payload (accessible in the frontend)
        token['email'] = user.email
        token['full_name'] = user.get_full_name()
        token['timezone'] = user.timezone
        return token
