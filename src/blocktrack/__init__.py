"""blocktrack — timeline block editor engine.

Arrange timed blocks on parallel tracks, edit them with resize/move/track
shift gestures, play them back with a time cursor, and regenerate an
ordered sequence of preview frames when the timeline changes. Projects
are declared in YAML manifests; timelines persist as JSON.
"""
