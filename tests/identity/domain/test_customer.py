"""Tests for the Customer aggregate and its sync helpers."""

import pytest
from identity.customer.customer import Customer, compose_full_name, normalize_email
from identity.customer.events import CustomerRegistered, ExternalIdentityLinked
from protean.exceptions import ValidationError


class TestComposeFullName:
    def test_provider_full_name_wins(self):
        assert compose_full_name("Jane", "Doe", "  Dr. Jane Doe ") == "Dr. Jane Doe"

    def test_joins_available_parts(self):
        assert compose_full_name("Jane", "Doe") == "Jane Doe"
        assert compose_full_name("Jane", "  ") == "Jane"
        assert compose_full_name(None, "Doe") == "Doe"

    def test_nothing_known(self):
        assert compose_full_name() is None


class TestNormalizeEmail:
    def test_normalizes_case_and_whitespace(self):
        assert normalize_email("  Jane@Example.com ") == "jane@example.com"

    @pytest.mark.parametrize("email", ["", None, "not-an-email"])
    def test_invalid_email_is_a_validation_error(self, email):
        with pytest.raises(ValidationError) as exc:
            normalize_email(email)
        assert "email" in exc.value.messages


class TestRegister:
    def test_register_customer(self):
        customer = Customer.register(
            email="Jane@Example.com",
            external_id="user_2abc",
            first_name="Jane",
            last_name="Doe",
        )

        assert customer.email == "jane@example.com"
        assert customer.external_id == "user_2abc"
        assert customer.full_name == "Jane Doe"
        assert customer.registered_at is not None

    def test_register_raises_event(self):
        customer = Customer.register(email="jane@example.com", external_id="user_2abc")

        events = [e for e in customer._events if isinstance(e, CustomerRegistered)]
        assert len(events) == 1
        assert events[0].email == "jane@example.com"
        assert events[0].external_id == "user_2abc"

    def test_register_without_provider_id(self):
        customer = Customer.register(email="walkin@example.com")
        assert customer.external_id is None

    def test_register_rejects_bad_email(self):
        with pytest.raises(ValidationError):
            Customer.register(email="nope")


class TestLinkExternalId:
    def test_links_when_missing(self):
        customer = Customer.register(email="jane@example.com")
        customer._events.clear()

        assert customer.link_external_id("user_2abc")

        assert customer.external_id == "user_2abc"
        assert isinstance(customer._events[0], ExternalIdentityLinked)

    def test_existing_link_is_kept(self):
        customer = Customer.register(email="jane@example.com", external_id="user_first")

        assert not customer.link_external_id("user_second")
        assert customer.external_id == "user_first"

    def test_empty_id_is_ignored(self):
        customer = Customer.register(email="jane@example.com")
        assert not customer.link_external_id(None)
