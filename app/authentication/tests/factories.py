"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import UserFactory, OwnerFactory

    tenant = UserFactory()
    owner = OwnerFactory(profile__first_name="Dana")
"""

import factory

from authentication.models import Profile, User, UserRole


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    The post_save signal creates the Profile; ``profile__*`` keyword
    arguments are applied to it after creation.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    email_verified = False
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Use UserManager.create_user() so the password is hashed."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )

    @factory.post_generation
    def profile(obj, create, extracted, **kwargs):
        if not create or not kwargs:
            return
        Profile.objects.filter(user=obj).update(**kwargs)
        obj.profile.refresh_from_db()


class OwnerFactory(UserFactory):
    """User whose profile role is OWNER."""

    @factory.post_generation
    def profile(obj, create, extracted, **kwargs):
        if not create:
            return
        kwargs.setdefault("role", UserRole.OWNER)
        kwargs.setdefault("first_name", "Olivia")
        kwargs.setdefault("last_name", "Owner")
        Profile.objects.filter(user=obj).update(**kwargs)
        obj.profile.refresh_from_db()
