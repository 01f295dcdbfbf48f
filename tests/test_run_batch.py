"""
Tests for the batch client (HTTP calls mocked).
"""
import csv
from unittest.mock import MagicMock, patch

import pytest
import requests

from benchmark import run_batch


def _response(status_code, payload=None):
    response = MagicMock(status_code=status_code)
    response.json.return_value = payload or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
    return response


@pytest.mark.unit
class TestMatchDescription:

    def test_matched(self):
        payload = {'input': 'vw golf', 'vehicleId': 'golf-gti', 'confidence': 4}
        with patch.object(run_batch.requests, 'post', return_value=_response(200, payload)) as post:
            row = run_batch.match_description('vw golf', 'http://matcher:3000/')

        post.assert_called_once_with(
            'http://matcher:3000/match', json={'description': 'vw golf'}, timeout=run_batch.REQUEST_TIMEOUT
        )
        assert row == {'input': 'vw golf', 'vehicle_id': 'golf-gti', 'confidence': 4,
                       'status': 'MATCHED', 'error': ''}

    def test_no_match(self):
        with patch.object(run_batch.requests, 'post', return_value=_response(404)):
            row = run_batch.match_description('vw golf')

        assert row['status'] == 'NO_MATCH'
        assert row['vehicle_id'] == ''

    def test_server_error(self):
        with patch.object(run_batch.requests, 'post', return_value=_response(500)):
            row = run_batch.match_description('vw golf')

        assert row['status'] == 'ERROR'
        assert '500' in row['error']

    def test_connection_error(self):
        error = requests.exceptions.ConnectionError("refused")
        with patch.object(run_batch.requests, 'post', side_effect=error):
            row = run_batch.match_description('vw golf')

        assert row['status'] == 'ERROR'
        assert 'refused' in row['error']


@pytest.mark.unit
class TestBatch:

    def test_load_descriptions_skips_blank_lines(self, tmp_path):
        path = tmp_path / 'input.txt'
        path.write_text('vw golf gti\n\n  toyota camry  \n', encoding='utf-8')

        assert run_batch.load_descriptions(str(path)) == ['vw golf gti', 'toyota camry']

    def test_results_keep_input_order(self):
        def fake_post(url, json, timeout):
            return _response(200, {'vehicleId': json['description'].upper(), 'confidence': 1})

        with patch.object(run_batch.requests, 'post', side_effect=fake_post):
            results = run_batch.run_batch(['a', 'b', 'c', 'd'], workers=3)

        assert [r['vehicle_id'] for r in results] == ['A', 'B', 'C', 'D']

    def test_main_writes_report(self, tmp_path, capsys):
        input_path = tmp_path / 'input.txt'
        input_path.write_text('vw golf gti\ntoyota camry\n', encoding='utf-8')
        output_path = tmp_path / 'results.csv'

        responses = {
            'vw golf gti': _response(200, {'vehicleId': 'golf-gti', 'confidence': 7}),
            'toyota camry': _response(404),
        }

        def fake_post(url, json, timeout):
            return responses[json['description']]

        with patch.object(run_batch.requests, 'post', side_effect=fake_post):
            exit_code = run_batch.main(['--input', str(input_path), '--output', str(output_path)])

        assert exit_code == 0
        with open(output_path, encoding='utf-8', newline='') as f:
            rows = list(csv.DictReader(f))
        assert [(r['input'], r['vehicle_id'], r['status']) for r in rows] == [
            ('vw golf gti', 'golf-gti', 'MATCHED'),
            ('toyota camry', '', 'NO_MATCH'),
        ]
        assert 'Vehicle ID: golf-gti' in capsys.readouterr().out

    def test_main_missing_input(self, tmp_path):
        assert run_batch.main(['--input', str(tmp_path / 'missing.txt')]) == 1
