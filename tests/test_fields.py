"""Tests for the server-side select fields."""

import json

import pytest

from ajax_select import fields as fields_module
from ajax_select.context import RenderContext, SearchRequestContext
from ajax_select.errors import InvalidCallbackError, SearchConfigurationError
from ajax_select.fields import AjaxMultiSelectField, AjaxSelectField, html_id, name_to_label
from ajax_select.providers import HttpSearchProvider, ListSearchProvider

ACME = {"id": 1, "title": "Acme"}
CONTEXT = RenderContext(locale="de_DE", form_name="Form_EditForm", link_prefix="/field")


def acme_search(query, request):
    if request.identifier:
        return ACME if request.identifier == "1" else None
    return [ACME] if "acm" in (query or "").lower() else []


def test_render_without_endpoint_or_callback_fails_every_time():
    """Rendering an unconfigured field raises on each attempt, for both variants."""

    single = AjaxSelectField("Company")
    multi = AjaxMultiSelectField("Tags")
    for _ in range(3):
        with pytest.raises(SearchConfigurationError):
            single.field(CONTEXT)
        with pytest.raises(SearchConfigurationError):
            multi.field(CONTEXT)


def test_configuration_error_message_is_translated():
    with pytest.raises(SearchConfigurationError) as exc_info:
        AjaxSelectField("Company").get_payload(CONTEXT)

    assert "Such-Endpunkt" in str(exc_info.value)
    assert "Company" in str(exc_info.value)


@pytest.mark.parametrize("callback", [None, "", "not callable", 42])
def test_invalid_callback_fails_at_configuration_time(callback):
    with pytest.raises(InvalidCallbackError):
        AjaxSelectField("Company").set_search_callback(callback)


def test_provider_without_search_method_is_rejected():
    with pytest.raises(InvalidCallbackError):
        AjaxMultiSelectField("Tags").set_search_provider(object())


def test_single_select_payload_shape():
    field = AjaxSelectField("Company").set_search_callback(acme_search)

    payload = json.loads(field.get_payload_json(CONTEXT))

    assert payload == {
        "id": "Form_EditForm_Company",
        "name": "Company",
        "value": None,
        "lang": "de",
        "config": {
            "minSearchChars": 3,
            "searchEndpoint": "/field/Company/search",
            "placeholder": "Suchen...",
            "getVars": None,
            "headers": None,
            "idOnlyMode": False,
        },
    }


def test_multi_select_payload_carries_display_fields():
    field = (
        AjaxMultiSelectField("Tags", value=[ACME])
        .set_search_callback(acme_search)
        .set_min_search_chars(2)
        .set_placeholder("Find tags")
        .set_get_vars({"scope": "public"})
        .set_search_headers({"X-Api-Key": "secret"})
    )

    payload = field.get_payload(RenderContext(locale="en_US")).model_dump()

    assert payload["value"] == [ACME]
    assert payload["lang"] == "en"
    assert payload["config"] == {
        "minSearchChars": 2,
        "searchEndpoint": "/field/Tags/search",
        "placeholder": "Find tags",
        "getVars": {"scope": "public"},
        "headers": {"X-Api-Key": "secret"},
        "displayFields": {"id": "ID", "title": "Title"},
    }


def test_custom_display_fields_replace_the_defaults():
    field = AjaxMultiSelectField("Tags").set_display_fields({"title": "Label", "urlSegment": "URL"})

    assert field.get_display_fields() == {"title": "Label", "urlSegment": "URL"}
    assert AjaxMultiSelectField("Other").get_display_fields() == {"id": "ID", "title": "Title"}


def test_endpoint_takes_precedence_over_callback(monkeypatch):
    """With both configured, payload and server-side search go to the endpoint."""

    calls = []

    class RecordingHttpProvider:
        def __init__(self, endpoint, get_vars=None, headers=None):
            self.endpoint = endpoint

        def search(self, query, request=None):
            calls.append((self.endpoint, query))
            return [{"id": 9, "title": "Remote"}]

    monkeypatch.setattr(fields_module, "HttpSearchProvider", RecordingHttpProvider)
    field = (
        AjaxSelectField("Company")
        .set_search_callback(acme_search)
        .set_endpoint("https://api.example.com/companies")
    )

    payload = field.get_payload(CONTEXT)
    results = field.search("acm")

    assert payload.config["searchEndpoint"] == "https://api.example.com/companies"
    assert results == [{"id": 9, "title": "Remote"}]
    assert calls == [("https://api.example.com/companies", "acm")]


def test_endpoint_alone_resolves_to_http_provider():
    field = AjaxSelectField("Company").set_endpoint("https://api.example.com/companies").set_get_vars({"a": "b"})

    provider = field.search_settings.resolve_provider(field.name)

    assert isinstance(provider, HttpSearchProvider)
    assert provider.get_vars == {"a": "b"}


def test_full_record_round_trip():
    field = AjaxSelectField("Company").set_search_callback(acme_search)
    field.set_value(ACME)

    assert field.value == '{"id":1,"title":"Acme"}'

    reloaded = AjaxSelectField("Company", value=field.value).set_search_callback(acme_search)
    assert reloaded.get_payload(CONTEXT).value == ACME
    assert reloaded.data_value() == ACME


def test_id_only_mode_stores_the_identifier():
    field = AjaxSelectField("Company").set_id_only_mode(True).set_search_callback(acme_search)
    field.set_value({"id": 7, "title": "Seven"})

    assert field.value == "7"
    assert field.get_payload(CONTEXT).value == "7"
    assert field.get_payload(CONTEXT).config["idOnlyMode"] is True


def test_id_only_mode_reads_a_previously_stored_record():
    field = AjaxSelectField("Company", value='{"id":1,"title":"Acme"}').set_id_only_mode(True)

    assert field.value_for_component() == "1"


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"title": "no id"}', "42"])
def test_malformed_single_value_is_treated_as_empty(raw):
    field = AjaxSelectField("Company", value=raw).set_search_callback(acme_search)

    assert field.get_payload(CONTEXT).value is None


def test_multi_select_value_is_deduplicated():
    field = AjaxMultiSelectField("Tags").set_search_callback(acme_search)
    field.set_value([ACME, {"id": "1", "title": "Acme again"}, {"id": 2, "title": "Globex"}])

    assert json.loads(field.value) == [ACME, {"id": 2, "title": "Globex"}]


@pytest.mark.parametrize("raw", ["", "[]", "not json", '{"id": 1}'])
def test_empty_or_malformed_multi_value(raw):
    field = AjaxMultiSelectField("Tags", value=raw).set_search_callback(acme_search)

    assert field.get_payload(CONTEXT).value is None
    assert field.data_value() == []


def test_markup_embeds_payload_and_hidden_value():
    field = AjaxSelectField("Company", value=ACME).set_search_callback(acme_search)

    markup = field.field(CONTEXT)

    assert 'id="Form_EditForm_Company"' in markup
    assert 'class="ajaxSelectFieldPlaceholder"' in markup
    assert "data-payload=\"{&quot;id&quot;:&quot;Form_EditForm_Company&quot;" in markup
    assert '<input type="hidden" name="Company" value="{&quot;id&quot;:1,&quot;title&quot;:&quot;Acme&quot;}">' in markup
    assert 'class="ajaxMultiSelectFieldPlaceholder"' in AjaxMultiSelectField("Tags").set_search_callback(acme_search).field(CONTEXT)


def test_markup_drops_a_malformed_stored_value():
    """A value that cannot be decoded is rendered as empty in both the payload and the hidden input."""

    field = AjaxSelectField("Company", value="{broken").set_search_callback(acme_search)

    markup = field.field(CONTEXT)

    assert field.get_payload(CONTEXT).value is None
    assert '<input type="hidden" name="Company" value="">' in markup
    assert "{broken" not in markup


def test_hidden_value_is_normalized_for_both_variants():
    """Id-only values stay bare ids and multi values are re-encoded without duplicates."""

    single = AjaxSelectField("Company", value='{"id": 1, "title": "Acme"}').set_search_callback(acme_search)
    single.set_id_only_mode(True)
    assert 'name="Company" value="1"' in single.field(CONTEXT)

    multi = AjaxMultiSelectField("Tags", value='[{"id": 1, "title": "A"}, {"id": "1", "title": "B"}]')
    multi.set_search_callback(acme_search)
    assert multi.form_value() == '[{"id":1,"title":"A"}]'


def test_search_header_values_are_coerced_to_strings():
    """Non-string header values still render and reach the payload as strings."""

    field = AjaxSelectField("Company").set_search_callback(acme_search).set_search_headers({"X-Version": 2})

    payload = json.loads(field.get_payload_json(CONTEXT))

    assert payload["config"]["headers"] == {"X-Version": "2"}


def test_field_base_cannot_be_instantiated():
    """Only the single and the multi select field can be created."""

    with pytest.raises(TypeError):
        fields_module._AjaxFieldBase("Company")


def test_search_response_has_json_and_cors_headers():
    field = AjaxSelectField("Company").set_search_callback(acme_search)

    response = field.search_response(SearchRequestContext.for_query("acm"))

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["content-type"].startswith("application/json")
    assert json.loads(response.body) == [ACME]


def test_search_response_resolves_id_requests():
    field = AjaxSelectField("Company").set_id_only_mode(True).set_search_callback(acme_search)

    response = field.search_response(SearchRequestContext.for_id(1))

    assert json.loads(response.body) == ACME


def test_callback_receives_query_and_request():
    seen = []

    def callback(query, request):
        seen.append((query, request.get_var("region")))
        return []

    field = AjaxSelectField("Company").set_search_callback(callback)
    field.search_response(SearchRequestContext.for_query("acm", region="eu"))

    assert seen == [("acm", "eu")]


def test_lookup_falls_back_to_search_for_providers_without_lookup():
    class SearchOnly:
        def search(self, query, request=None):
            return [{"id": 1, "title": "Acme"}, {"id": 2, "title": "Globex"}]

    field = AjaxSelectField("Company").set_search_provider(SearchOnly())

    assert field.lookup(2) == {"id": 2, "title": "Globex"}
    assert field.lookup(3) is None


def test_list_provider_backs_a_field():
    field = AjaxSelectField("Company").set_search_provider(
        ListSearchProvider([ACME, {"id": 2, "title": "Globex"}])
    )

    assert field.search("glob") == [{"id": 2, "title": "Globex"}]
    assert field.lookup("1") == ACME


def test_labels_and_html_ids():
    assert name_to_label("MyField") == "My Field"
    assert name_to_label("Parent.HTMLTitle") == "HTML Title"
    assert name_to_label("first_name") == "first name"
    assert AjaxSelectField("ParentCompany").title == "Parent Company"
    assert AjaxSelectField("Company", title="Firm").title == "Firm"
    assert html_id("Form EditForm", "Company[0]") == "Form_EditForm_Company_0"
    assert html_id(None, "Company") == "Company"
