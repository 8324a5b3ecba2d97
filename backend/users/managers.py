from django.contrib.auth.base_user import BaseUserManager


class CustomUserManager(BaseUserManager):
    """Email is the login identifier, not the username."""

    def create_user(self, email, password=None, **extra_fields):
        """New accounts default to UTC until the user picks a timezone."""
        if not email:
            raise ValueError('An email address is required.')

        extra_fields.setdefault('timezone', 'UTC')
        user = self.model(email=self.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        for flag in ('is_staff', 'is_superuser'):
            if extra_fields.get(flag) is not True:
                raise ValueError(f'Superuser must have {flag}=True.')

        return self.create_user(email, password, **extra_fields)
