"""
Tests for playlist-to-guide channel matching.
"""
import pytest

from epg_guide.services.channel_matcher import match_channels, name_similarity, playlist_key
from epg_guide.services.embedded_parser_service import extract_playlist_channels
from epg_guide.services.guide_types import GuideChannel, PlaylistChannel


def _catalog(*channels: GuideChannel) -> dict[str, GuideChannel]:
    return {channel.id: channel for channel in channels}


LA1 = GuideChannel(id="la1.es", name="La 1", country="ES")
LA1_HD = GuideChannel(id="la1hd.es", name="La 1 HD", country="ES")
LA2_MX = GuideChannel(id="la2.mx", name="La 2", country="MX")
LA2_ES = GuideChannel(id="la2.es", name="La 2", country="ES")
BBC = GuideChannel(id="bbc-one.uk", name="BBC One", country="GB")


class TestNameSimilarity:

    def test_known_pair(self):
        assert name_similarity("La 1", "La1") == pytest.approx(0.75)

    def test_identical_after_normalization(self):
        assert name_similarity("Télé-Québec", "tele quebec") == 1.0

    def test_symmetric(self):
        assert name_similarity("BBC One", "BBC 1") == name_similarity("BBC 1", "BBC One")

    def test_empty_names(self):
        assert name_similarity("", "") == 1.0
        assert name_similarity("abc", "") == 0.0


class TestPlaylistKey:

    def test_precedence(self):
        assert playlist_key(PlaylistChannel(name="La 1", id="p1", attrs={"tvg-id": " la1.es "})) == "la1.es"
        assert playlist_key(PlaylistChannel(name="La 1", id="p1")) == "p1"
        assert playlist_key(PlaylistChannel(name=" La 1 ")) == "La 1"
        assert playlist_key(PlaylistChannel(name="  ")) == ""


class TestMatchChannels:

    def test_exact_id_beats_better_name(self):
        playlist = [PlaylistChannel(name="La 1 HD", attrs={"tvg-id": "la1.es"})]

        result = match_channels(playlist, _catalog(LA1, LA1_HD))

        assert result.map == {"la1.es": "la1.es"}
        assert result.matches["la1.es"].method == "id"
        assert result.matches["la1.es"].score == 1.0
        assert result.coverage == 100

    def test_uppercase_m3u_attributes_use_id_path(self):
        playlist = extract_playlist_channels('#EXTINF:-1 TVG-ID="la1.es",Something else\nhttp://s/la1\n')

        result = match_channels(playlist, _catalog(LA1))

        assert result.map == {"la1.es": "la1.es"}
        assert result.matches["la1.es"].method == "id"

    def test_unknown_id_falls_back_to_name(self):
        playlist = [PlaylistChannel(name="La 1", attrs={"tvg-id": "la1.missing"})]

        result = match_channels(playlist, _catalog(BBC, LA1))

        assert result.map == {"la1.missing": "la1.es"}
        assert result.matches["la1.missing"].method == "name"

    def test_fuzzy_name_threshold(self):
        playlist = [PlaylistChannel(name="La1")]

        assert match_channels(playlist, _catalog(LA1)).map == {"La1": "la1.es"}
        assert match_channels(playlist, _catalog(LA1), min_similarity=0.8).map == {}

    def test_coverage_rounds(self):
        playlist = [
            PlaylistChannel(name="La 1"),
            PlaylistChannel(name="BBC One"),
            PlaylistChannel(name="Zzzz Qqqq Xxxx"),
        ]

        result = match_channels(playlist, _catalog(LA1, BBC))

        assert result.map == {"La 1": "la1.es", "BBC One": "bbc-one.uk"}
        assert result.coverage == 67

    def test_blank_entries_count_towards_coverage(self):
        playlist = [PlaylistChannel(name="La 1"), PlaylistChannel(name="   ")]

        result = match_channels(playlist, _catalog(LA1))

        assert result.map == {"La 1": "la1.es"}
        assert result.coverage == 50

    def test_ties_go_to_first_candidate(self):
        result = match_channels([PlaylistChannel(name="La 2")], _catalog(LA2_MX, LA2_ES))
        assert result.map == {"La 2": "la2.mx"}

    def test_country_bonus_breaks_tie(self):
        playlist = [PlaylistChannel(name="La 2", attrs={"tvg-country": "es"})]

        result = match_channels(playlist, _catalog(LA2_MX, LA2_ES))

        assert result.map == {"La 2": "la2.es"}
        assert result.matches["La 2"].score == 1.0

    def test_custom_country_attribute(self):
        playlist = [PlaylistChannel(name="La 2", attrs={"country": "ES"})]

        result = match_channels(playlist, _catalog(LA2_MX, LA2_ES), country_attr_key="country")

        assert result.map == {"La 2": "la2.es"}

    def test_scores_stay_in_range(self):
        playlist = [
            PlaylistChannel(name="La 2", attrs={"tvg-country": "ES"}),
            PlaylistChannel(name="La1"),
        ]

        result = match_channels(playlist, _catalog(LA2_ES, LA1))

        assert all(0 <= match.score <= 1 for match in result.matches.values())

    def test_empty_inputs(self):
        assert match_channels([], _catalog(LA1)).coverage == 0

        result = match_channels([PlaylistChannel(name="La 1")], {})
        assert result.map == {}
        assert result.coverage == 0

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValueError):
            match_channels([], {}, min_similarity=threshold)
