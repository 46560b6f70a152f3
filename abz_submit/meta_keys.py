from __future__ import annotations

# Identifier generators and tag keys shared by the tag layer and the pipeline.

MUSICBRAINZ_TRACK = "musicbrainz-track"
ACOUSTID = "acoustid"

ID3_MUSICBRAINZ_OWNER = "http://musicbrainz.org"
VORBIS_MUSICBRAINZ_TRACKID = "MUSICBRAINZ_TRACKID"
MP4_MUSICBRAINZ_TRACKID = "----:com.apple.iTunes:MusicBrainz Track Id"

OUTPUT_MBID_PATH = ("metadata", "tags", "musicbrainz_trackid")
