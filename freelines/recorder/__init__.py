"""Track recording: the recorder state machine and session id strategies."""

from .session_ids import (  # noqa: F401
    CounterSessionIdGenerator,
    SecureSessionIdGenerator,
    default_session_id_generator,
)
from .tracker import (  # noqa: F401
    RecorderConfig,
    RecorderState,
    TrackRecorder,
    round_sample,
)
