from portals_mcp.tools.naming import generate_tool_name, slugify_title


def test_slugify_collapses_runs_and_strips_edges():
    assert slugify_title("  Weather -- API!! ") == "weather_api"
    assert slugify_title("GPT-4 Summarizer (beta)") == "gpt_4_summarizer_beta"


def test_generate_tool_name_format():
    assert generate_tool_name("Weather API", "Abc123xyz") == "portal_weather_api_Abc1"


def test_generate_tool_name_is_deterministic():
    assert generate_tool_name("Weather API", "Abc123xyz") == generate_tool_name("Weather API", "Abc123xyz")


def test_same_title_different_ids_produce_different_names():
    first = generate_tool_name("Weather API", "AAAA1111")
    second = generate_tool_name("Weather API", "BBBB2222")
    assert first != second
    assert first.endswith("_AAAA")
    assert second.endswith("_BBBB")


def test_short_id_uses_whole_id():
    assert generate_tool_name("Echo", "xy") == "portal_echo_xy"
