import asyncio

import pytest

from emolody_recs.errors import AuthError, GenerationInProgress
from emolody_recs.features import TasteProfile, TasteProfileExtractor
from emolody_recs.moods import Mood
from emolody_recs.session import AuthSession, ConnectedService, MemoryPlaylistSink, PlaylistSession

from conftest import FakeCatalog, FakeLibrary, RecordingSink, unique_tracks


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def session(make_engine, sink):
    return PlaylistSession(make_engine(), sink=sink)


def test_save_without_playlist_returns_false(session, sink):
    assert asyncio.run(session.save()) is False
    assert sink.created == []


def test_save_without_sink_returns_false(make_engine):
    session = PlaylistSession(make_engine())
    asyncio.run(session.generate(Mood.HAPPY))
    assert asyncio.run(session.save()) is False


def test_save_hands_tracks_and_name_to_sink(session, sink):
    result = asyncio.run(session.generate(Mood.CALM))
    assert asyncio.run(session.save()) is True

    tracks, name = sink.created[0]
    assert name == "Emolody Calm Playlist"
    assert [t.key for t in tracks] == [t.key for t in result.tracks]


def test_save_returns_sink_verdict(make_engine):
    session = PlaylistSession(make_engine(), sink=RecordingSink(result=False))
    asyncio.run(session.generate(Mood.SAD))
    assert asyncio.run(session.save()) is False


def test_save_absorbs_sink_errors(make_engine):
    session = PlaylistSession(make_engine(), sink=RecordingSink(error=AuthError("expired")))
    asyncio.run(session.generate(Mood.SAD))
    assert asyncio.run(session.save()) is False


def test_share_empty_playlist_is_noop(make_engine):
    shared = []
    session = PlaylistSession(make_engine(), share_surface=shared.append)
    assert session.share() is None
    assert shared == []


def test_share_formats_numbered_listing(make_engine):
    shared = []
    session = PlaylistSession(make_engine(), share_surface=shared.append)
    result = asyncio.run(session.generate(Mood.FOCUSED))

    text = session.share()
    lines = text.split("\n")
    assert lines[0] == "🎵 My Emolody Playlist - Focused 🎵"
    assert lines[1] == ""
    first = result.tracks[0]
    assert lines[2] == f"1. {first.title} - {first.artist} ({first.duration})"
    assert lines[-2] == ""
    assert lines[-1] == "Generated with Emolody App"
    assert len(lines) == len(result.tracks) + 4
    assert shared == [text]


def test_share_is_byte_identical_across_calls(session):
    asyncio.run(session.generate(Mood.ROMANTIC))
    assert session.share().encode() == session.share().encode()


def test_generation_replaces_previous_result(session):
    first = asyncio.run(session.generate(Mood.HAPPY))
    second = asyncio.run(session.generate(Mood.SAD))
    assert session.result is second
    assert session.result.mood is Mood.SAD
    assert first.mood is Mood.HAPPY
    assert session.playlist_name == "Emolody Sad Playlist"


def test_concurrent_generation_is_rejected(make_engine):
    catalog = FakeCatalog(default=unique_tracks, delays={"Calm calm": 0.2})
    session = PlaylistSession(make_engine(catalog=catalog))

    async def scenario():
        first = asyncio.create_task(session.generate(Mood.CALM))
        await asyncio.sleep(0.05)
        assert session.is_generating
        with pytest.raises(GenerationInProgress):
            await session.generate(Mood.HAPPY)
        return await first

    result = asyncio.run(scenario())
    assert result.mood is Mood.CALM
    assert session.result is result
    assert not session.is_generating


def test_analyze_taste_replaces_profile(make_engine):
    session = PlaylistSession(
        make_engine(),
        extractor=TasteProfileExtractor(),
        profile=TasteProfile(top_genres=["Jazz"], favorite_artists=["Miles Davis"]),
    )
    profile = asyncio.run(session.analyze_taste(FakeLibrary(history=[("Drake", 2)])))
    assert session.profile is profile
    assert profile.favorite_artists == ["Drake"]
    assert "Jazz" not in profile.top_genres


def test_analyze_taste_without_source_clears_profile(make_engine):
    session = PlaylistSession(make_engine(), profile=TasteProfile(top_genres=["Pop"]))
    asyncio.run(session.analyze_taste())
    assert session.profile.is_empty


def test_open_playlist_reaches_sink(session, sink):
    asyncio.run(session.generate(Mood.ENERGETIC))
    asyncio.run(session.open_playlist())
    assert sink.opened == ["Emolody Energetic Playlist"]


def test_memory_sink_records_last_playlist(make_engine):
    memory = MemoryPlaylistSink()
    session = PlaylistSession(make_engine(), sink=memory)
    result = asyncio.run(session.generate(Mood.HAPPY))
    assert asyncio.run(session.save()) is True
    assert memory.last_created_name == "Emolody Happy Playlist"
    assert memory.last_created_tracks == list(result.tracks)


class _User:
    def __init__(self, me=None, error=None):
        self.me = me
        self.error = error

    def current_user(self):
        if self.error is not None:
            raise self.error
        return self.me


def test_auth_session_from_spotify():
    auth = AuthSession.from_spotify(_User(me={"id": "u1", "display_name": "Toleen", "email": "t@example.com"}))
    assert auth.is_authenticated
    assert auth.connected_service is ConnectedService.SPOTIFY
    assert (auth.user_name, auth.user_email) == ("Toleen", "t@example.com")


def test_auth_session_from_failing_spotify_is_signed_out():
    auth = AuthSession.from_spotify(_User(error=AuthError("no token")))
    assert not auth.is_authenticated
    assert auth.connected_service is ConnectedService.NONE
