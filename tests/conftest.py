import pytest

from audionorm.core.config import ToolConfig
from audionorm.core.models import MediaInfo

LOUDNORM_OUTPUT = """\
Input #0, wav, from 'in.wav':
  Duration: 00:00:12.00, bitrate: 1411 kb/s
  Stream #0:0: Audio: pcm_s16le ([1][0][0][0] / 0x0001), 44100 Hz, stereo, s16, 1411 kb/s
out_time_us=6000000
progress=continue
out_time_us=12000000
progress=end
[Parsed_loudnorm_0 @ 0x55d0c8a0b440]
{
	"input_i" : "-23.50",
	"input_tp" : "-4.12",
	"input_lra" : "5.30",
	"input_thresh" : "-33.81",
	"output_i" : "-23.02",
	"output_tp" : "-4.00",
	"output_lra" : "5.10",
	"output_thresh" : "-33.30",
	"normalization_type" : "dynamic",
	"target_offset" : "0.02"
}
"""

VOLUMEDETECT_OUTPUT = """\
[Parsed_volumedetect_0 @ 0x7f8b3c004a40] n_samples: 1058400
[Parsed_volumedetect_0 @ 0x7f8b3c004a40] mean_volume: -26.0 dB
[Parsed_volumedetect_0 @ 0x7f8b3c004a40] max_volume: -3.5 dB
[Parsed_volumedetect_0 @ 0x7f8b3c004a40] histogram_3db: 12
"""


@pytest.fixture
def loudnorm_output():
    return LOUDNORM_OUTPUT


@pytest.fixture
def volumedetect_output():
    return VOLUMEDETECT_OUTPUT


@pytest.fixture
def tool_config(tmp_path):
    return ToolConfig(search_dir=tmp_path, show_progress=False)


@pytest.fixture
def media():
    return MediaInfo(codec_name="flac", bit_rate="900000", sample_rate="44100",
                     channels=2, channel_layout="stereo", duration=12.0)
