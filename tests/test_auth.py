"""
Test suite for registration and JWT authentication.

Tests cover:
- Registration with validation of email, password and phone number
- Email-based token issue and refresh
- Bearer tokens on protected endpoints
"""

import pytest
from django.contrib.auth import authenticate, get_user_model
from rest_framework import status

User = get_user_model()

REGISTER_URL = '/api/auth/register/'
TOKEN_URL = '/api/auth/token/'
REFRESH_URL = '/api/auth/token/refresh/'


@pytest.fixture
def registration_data():
    return {
        'email': 'New.User@Example.com',
        'password': 'TestPass123!',
        'confirm_password': 'TestPass123!',
        'first_name': 'New',
        'last_name': 'User',
        'phone_number': '+1-234-567-8900',
    }


@pytest.mark.django_db
class TestUserRegistration:

    def test_register(self, api_client, registration_data):
        response = api_client.post(REGISTER_URL, registration_data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['email'] == 'new.user@example.com'
        assert 'password' not in response.data
        assert 'confirm_password' not in response.data

        user = User.objects.get(email='new.user@example.com')
        assert user.check_password('TestPass123!')
        assert user.username == 'new.user@example.com'

    def test_duplicate_email_case_insensitive(self, api_client, registration_data, owner):
        registration_data['email'] = 'OWNER@test.com'

        response = api_client.post(REGISTER_URL, registration_data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'email' in response.data

    def test_password_mismatch(self, api_client, registration_data):
        registration_data['confirm_password'] = 'Different123!'

        response = api_client.post(REGISTER_URL, registration_data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'confirm_password' in response.data

    def test_weak_password(self, api_client, registration_data):
        registration_data['password'] = registration_data['confirm_password'] = '12345'

        response = api_client.post(REGISTER_URL, registration_data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'password' in response.data

    def test_invalid_phone_number(self, api_client, registration_data):
        registration_data['phone_number'] = '12-34'

        response = api_client.post(REGISTER_URL, registration_data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'phone_number' in response.data

    def test_email_required(self, api_client, registration_data):
        del registration_data['email']

        response = api_client.post(REGISTER_URL, registration_data, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestTokenAuthentication:

    def test_obtain_pair_with_email(self, api_client, owner):
        response = api_client.post(
            TOKEN_URL, {'email': 'owner@test.com', 'password': 'TestPass123!'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data

    def test_email_is_case_insensitive(self, api_client, owner):
        response = api_client.post(
            TOKEN_URL, {'email': 'Owner@Test.com', 'password': 'TestPass123!'}, format='json'
        )
        assert response.status_code == status.HTTP_200_OK

    def test_wrong_password(self, api_client, owner):
        response = api_client.post(
            TOKEN_URL, {'email': 'owner@test.com', 'password': 'nope'}, format='json'
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_inactive_user(self, api_client, owner):
        owner.is_active = False
        owner.save()

        response = api_client.post(
            TOKEN_URL, {'email': 'owner@test.com', 'password': 'TestPass123!'}, format='json'
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh(self, api_client, owner):
        tokens = api_client.post(
            TOKEN_URL, {'email': 'owner@test.com', 'password': 'TestPass123!'}, format='json'
        ).data

        response = api_client.post(REFRESH_URL, {'refresh': tokens['refresh']}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data

    def test_access_token_authenticates_requests(self, api_client, owner, product):
        access = api_client.post(
            TOKEN_URL, {'email': 'owner@test.com', 'password': 'TestPass123!'}, format='json'
        ).data['access']

        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        response = api_client.get('/api/products/mine/')

        assert response.status_code == status.HTTP_200_OK
        assert [p['id'] for p in response.data] == [product.id]

    def test_garbage_token_rejected(self, api_client, db):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = api_client.get('/api/transactions/mine/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestEmailBackend:

    def test_authenticate_by_email(self, owner):
        assert authenticate(email='OWNER@test.com', password='TestPass123!') == owner

    def test_username_argument_is_treated_as_email(self, owner):
        assert authenticate(username='owner@test.com', password='TestPass123!') == owner

    def test_unknown_email(self, db):
        assert authenticate(email='ghost@test.com', password='TestPass123!') is None

    def test_email_is_stored_lower_case(self, user_factory):
        user = user_factory('MiXeD@Test.com')
        assert user.email == 'mixed@test.com'

    def test_surrounding_whitespace_is_ignored(self, owner):
        assert authenticate(email='  owner@test.com ', password='TestPass123!') == owner

    def test_inactive_user_cannot_authenticate(self, owner):
        owner.is_active = False
        owner.save()

        assert authenticate(email='owner@test.com', password='TestPass123!') is None
