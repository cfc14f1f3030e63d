"""Tests for QCSClient."""

import json
import os

import pytest

from qcs_client import ClientConfig, QCSClient
from qcs_client.exceptions import (
    RemoteCancellationError,
    RemoteExecutionError,
    TransportError,
    ValidationError,
)
from qcs_client.types import CircuitFile, JobHandle, JobStatus, RemoteError, SimulationResult

from .conftest import FakeChannel, bell_circuit, make_result

NEW, RUNNING, DONE = JobStatus.NEW, JobStatus.RUNNING, JobStatus.DONE

RESULTS = {
    "results.json": json.dumps([{"file": "result1.pb"}]).encode(),
    "result1.pb": make_result({"00": 510, "11": 490}),
}


@pytest.fixture
def channel():
    return FakeChannel(statuses=[NEW, RUNNING, DONE], results=dict(RESULTS))


@pytest.fixture
def client(channel, circuit_codec):
    return QCSClient(ClientConfig(poll_interval=0), channel=channel, circuit_codec=circuit_codec)


class TestExecute:
    def test_submit_single_circuit(self, client, channel):
        handle = client.execute(bell_circuit(), algorithm="mps", nsamples=200, seed=5)

        assert handle == JobHandle("job-1")
        submission = channel.submissions[0]
        assert submission.algorithm == "mps"
        assert submission.label.startswith("pyapi_v")
        assert submission.timelimit == 5

        manifest = json.loads(submission.files["circuits.json"])
        assert manifest["samples"] == 200
        assert manifest["seed"] == 5
        assert manifest["circuits"] == [{"file": "circuit1.pb", "type": "proto"}]

    def test_staging_directory_removed(self, client, channel):
        client.execute(bell_circuit())
        assert not os.path.exists(channel.submissions[0].directory)

    def test_staging_directory_removed_on_transport_error(self, circuit_codec):
        staged = []

        class Failing(FakeChannel):
            def submit(self, bundle, algorithm, label, timelimit):
                staged.append(bundle.directory)
                raise TransportError("Service unavailable", status_code=503)

        client = QCSClient(channel=Failing(), circuit_codec=circuit_codec)
        with pytest.raises(TransportError):
            client.execute(bell_circuit())
        assert staged and not os.path.exists(staged[0])

    def test_batch_of_files(self, client, channel, qasm_file, stim_file):
        client.execute([qasm_file, CircuitFile(stim_file)], algorithm="statevector")
        files = channel.submissions[0].files
        assert {"circuit1.qasm", "circuit2.stim"} <= set(files)
        manifest = json.loads(files["circuits.json"])
        assert "bondDimension" not in manifest

    def test_label_and_extra_parameters(self, client, channel):
        client.execute(bell_circuit(), label="bell", noisemodel="depol")
        submission = channel.submissions[0]
        assert submission.label == "bell"
        assert json.loads(submission.files["circuits.json"])["noisemodel"] == "depol"

    def test_invalid_request_is_not_submitted(self, client, channel):
        with pytest.raises(ValidationError):
            client.execute([bell_circuit(), bell_circuit()])
        with pytest.raises(ValidationError):
            client.execute(bell_circuit(), nsamples=10**6)
        assert channel.submissions == []

    def test_max_timelimit_from_service(self, circuit_codec):
        class Counting(FakeChannel):
            limit_calls = 0

            def max_time_limit(self):
                self.limit_calls += 1
                return 60

        channel = Counting()
        client = QCSClient(channel=channel, circuit_codec=circuit_codec)
        client.execute(bell_circuit(), timelimit=45)
        client.execute(bell_circuit(), timelimit=60)
        with pytest.raises(ValidationError):
            client.execute(bell_circuit(), timelimit=61)
        assert channel.limit_calls == 1

    def test_max_timelimit_from_config(self, circuit_codec):
        client = QCSClient(
            ClientConfig(max_timelimit=10), channel=FakeChannel(limit=60), circuit_codec=circuit_codec
        )
        with pytest.raises(ValidationError, match="less than 10 minutes"):
            client.execute(bell_circuit(), timelimit=20)

    def test_default_max_timelimit(self, client):
        assert client.max_timelimit() == 30

    def test_local_rules_checked_before_account_limit(self, circuit_codec, tmp_path):
        class Unreachable(FakeChannel):
            def max_time_limit(self):
                raise TransportError("Could not connect to https://fake.qcs.io")

        notes = tmp_path / "notes.txt"
        notes.write_text("not a circuit\n")
        client = QCSClient(channel=Unreachable(), circuit_codec=circuit_codec)
        with pytest.raises(ValidationError):
            client.execute(bell_circuit(), nsamples=0)
        with pytest.raises(ValidationError):
            client.execute([bell_circuit(), bell_circuit()])
        with pytest.raises(ValidationError):
            client.execute(str(notes))
        with pytest.raises(TransportError):
            client.execute(bell_circuit())


class TestGetResults:
    def test_polls_then_downloads_once(self, client, channel):
        channel.statuses = [NEW, NEW, RUNNING, DONE]
        handle = client.execute(bell_circuit())
        results = client.get_results(handle)

        assert channel.status_calls == 4
        assert channel.download_calls == 1
        assert len(results) == 1
        assert isinstance(results[0], SimulationResult)
        assert results[0].counts == {"00": 510, "11": 490}

    def test_job_id_string(self, client, channel):
        result = client.get_result("job-1")
        assert result.most_frequent() == ("00", 0.51)

    def test_keeps_files_in_dest_dir(self, client, tmp_path):
        client.get_results("job-1", dest_dir=str(tmp_path))
        assert (tmp_path / "results.json").exists()
        assert (tmp_path / "result1.pb").exists()

    def test_partial_failure(self, client, channel):
        channel.results = {
            "results.json": json.dumps(
                [{"file": "result1.pb"}, {"error": "Time limit exceeded"}]
            ).encode(),
            "result1.pb": make_result({"0": 1}),
        }
        results = client.get_results("job-1")
        assert results[1] == RemoteError("Time limit exceeded")
        with pytest.warns(UserWarning, match="Multiple results"):
            assert client.get_result("job-1") == results[0]

    def test_remote_error(self, client, channel):
        channel.statuses = [RUNNING, (JobStatus.ERROR, "Invalid gate")]
        with pytest.raises(RemoteExecutionError, match="Invalid gate"):
            client.get_results("job-1")
        assert channel.download_calls == 0

    def test_canceled(self, client, channel):
        channel.statuses = [JobStatus.CANCELED]
        with pytest.raises(RemoteCancellationError):
            client.get_results("job-1")
        assert channel.download_calls == 0

    def test_wait_with_progress(self, client):
        seen = []
        info = client.wait("job-1", progress_callback=seen.append)
        assert info.status == DONE
        assert [i.status for i in seen] == [NEW, RUNNING, DONE]


class TestInputs:
    def test_round_trip(self, client, qasm_file, tmp_path):
        circuit = bell_circuit()
        handle = client.execute([circuit, qasm_file], algorithm="mps", nsamples=64)

        dest = tmp_path / "inputs"
        dest.mkdir()
        circuits, params = client.get_inputs(handle, dest_dir=str(dest))

        assert circuits[0] == circuit
        assert isinstance(circuits[1], CircuitFile)
        with open(circuits[1].path) as staged, open(qasm_file) as original:
            assert staged.read() == original.read()
        assert params["samples"] == 64
        assert params["algorithm"] == "mps"

    def test_get_input(self, client, tmp_path):
        handle = client.execute(bell_circuit(), nsamples=32)
        circuit, params = client.get_input(handle, dest_dir=str(tmp_path))
        assert circuit == bell_circuit()
        assert params["samples"] == 32


class TestCancel:
    def test_cancel(self, client, channel):
        assert client.cancel("job-9")
        assert channel.canceled == ["job-9"]


class TestOverHttp:
    def test_execute_and_get_result(self, httpx_mock, circuit_codec):
        url = "https://fake.qcs.io"
        httpx_mock.add_response(url=f"{url}/v1/user/limits", json={"max_time_limit": 30})
        httpx_mock.add_response(url=f"{url}/v1/jobs", method="POST", json={"job_id": "abc"})
        httpx_mock.add_response(url=f"{url}/v1/jobs/abc", json={"status": "RUNNING"})
        httpx_mock.add_response(url=f"{url}/v1/jobs/abc", json={"status": "DONE"})
        httpx_mock.add_response(
            url=f"{url}/v1/jobs/abc/results", json={"files": list(RESULTS)}
        )
        for name, content in RESULTS.items():
            httpx_mock.add_response(url=f"{url}/v1/jobs/abc/results/{name}", content=content)

        config = ClientConfig(token="test-token", url=url, poll_interval=0)
        with QCSClient(config, circuit_codec=circuit_codec) as client:
            job = client.execute(bell_circuit(), algorithm="statevector")
            result = client.get_result(job)

        assert job.job_id == "abc"
        assert result.counts == {"00": 510, "11": 490}
