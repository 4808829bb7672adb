"""Tests for BatchDriver, including end-to-end runs on mocked services."""
from unittest.mock import Mock

import boto3
import mongomock
import pytest
from moto import mock_aws

from processor.batch_driver import BatchDriver
from processor.errors import FetchError, PersistError, ScrapeError, StoreError
from processor.models import Coordinates, RowOutcome, SourceRow
from storage.mongo_store import MongoEventStore
from storage.s3_publisher import S3ImagePublisher

BUCKET = 'test-event-images'
DB_NAME = 'test-events'
SCRAPED_URL = 'https://scontent.cdninstagram.com/v/abc.jpg'
SPOOKY_CELLS = [
    "2024-10-31", "Spooky Mixer", "Club X", "7:00 PM", "9:00 PM", "123 Main St",
    "fun night", "Open", "https://instagram.com/p/abc", "halloween, social"
]


def make_row(**overrides):
    """Create a SourceRow based on the Spooky Mixer row."""
    row = SourceRow.from_cells(SPOOKY_CELLS)
    for name, value in overrides.items():
        setattr(row, name, value)
    return row


@pytest.fixture
def collaborators():
    """Create mocked pipeline collaborators."""
    geocoder = Mock()
    geocoder.resolve.return_value = Coordinates(latitude=40.7, longitude=-74.0)
    scraper = Mock()
    scraper.fetch_primary_image.return_value = SCRAPED_URL
    publisher = Mock()
    publisher.republish.return_value = f"https://{BUCKET}.s3.us-east-1.amazonaws.com/Spooky_Mixer.jpg"
    store = Mock()
    store.persist.return_value = 'inserted-id'
    return {
        'geocoder': geocoder,
        'scraper': scraper,
        'publisher': publisher,
        'store': store,
    }


@pytest.fixture
def driver(collaborators):
    return BatchDriver(**collaborators)


class TestProcessRow:
    """Test cases for the per-row state machine."""

    def test_process_row_success(self, driver, collaborators):
        outcome = driver.process_row(make_row())

        assert outcome is RowOutcome.PERSISTED
        collaborators['geocoder'].resolve.assert_called_once_with('123 Main St')
        collaborators['scraper'].fetch_primary_image.assert_called_once_with(
            'https://instagram.com/p/abc'
        )
        collaborators['publisher'].republish.assert_called_once_with(
            SCRAPED_URL, 'Spooky_Mixer.jpg'
        )
        record = collaborators['store'].persist.call_args[0][0]
        assert record.start_time == '19:00'
        assert record.end_time == '21:00'
        assert record.latitude == 40.7

    def test_missing_location_skips_before_network(self, driver, collaborators):
        outcome = driver.process_row(make_row(location=''))

        assert outcome is RowOutcome.SKIPPED_MISSING_INPUT
        collaborators['geocoder'].resolve.assert_not_called()
        collaborators['scraper'].fetch_primary_image.assert_not_called()
        collaborators['publisher'].republish.assert_not_called()
        collaborators['store'].persist.assert_not_called()

    def test_invalid_start_time_skips(self, driver, collaborators):
        outcome = driver.process_row(make_row(start_time='7PM-ish'))

        assert outcome is RowOutcome.SKIPPED_MISSING_INPUT
        collaborators['geocoder'].resolve.assert_not_called()

    def test_invalid_end_time_still_persists(self, driver, collaborators):
        outcome = driver.process_row(make_row(end_time='late'))

        assert outcome is RowOutcome.PERSISTED
        record = collaborators['store'].persist.call_args[0][0]
        assert record.end_time is None

    def test_missing_reference_link_skips(self, driver, collaborators):
        outcome = driver.process_row(make_row(reference_link=''))

        assert outcome is RowOutcome.SKIPPED_MISSING_REFERENCE
        collaborators['scraper'].fetch_primary_image.assert_not_called()
        collaborators['store'].persist.assert_not_called()

    def test_unresolved_location_still_persists(self, driver, collaborators, caplog):
        collaborators['geocoder'].resolve.return_value = Coordinates()

        with caplog.at_level('INFO', logger='processor.batch_driver'):
            outcome = driver.process_row(make_row())

        assert outcome is RowOutcome.PERSISTED
        assert 'Continuing without coordinates for event: Spooky Mixer' in caplog.text
        record = collaborators['store'].persist.call_args[0][0]
        assert record.latitude is None
        assert record.longitude is None

    @pytest.mark.parametrize('stage,method,error', [
        ('scraper', 'fetch_primary_image', ScrapeError('no image')),
        ('publisher', 'republish', FetchError('404')),
        ('publisher', 'republish', StoreError('access denied')),
        ('store', 'persist', PersistError('write failed')),
    ])
    def test_stage_failure_marks_row_failed(self, driver, collaborators, stage, method, error):
        getattr(collaborators[stage], method).side_effect = error

        outcome = driver.process_row(make_row())

        assert outcome is RowOutcome.FAILED

    def test_scrape_failure_stops_later_stages(self, driver, collaborators):
        collaborators['scraper'].fetch_primary_image.side_effect = ScrapeError('no image')

        driver.process_row(make_row())

        collaborators['publisher'].republish.assert_not_called()
        collaborators['store'].persist.assert_not_called()


class TestProcessRows:
    """Test cases for the batch loop and failure ledger."""

    def test_failure_ledger_contents(self, driver, collaborators):
        collaborators['scraper'].fetch_primary_image.side_effect = [
            ScrapeError('no image'),
            SCRAPED_URL,
        ]
        rows = [
            make_row(title='Scrape Fails'),
            make_row(title='No Location', location=''),
            make_row(title='No Link', reference_link=''),
            make_row(title='Works'),
        ]

        result = driver.process_rows(rows)

        assert result.failed_titles == ['Scrape Fails', 'No Location']
        assert result.persisted == 1
        assert result.failed == 1
        assert result.skipped_missing_input == 1
        assert result.skipped_missing_reference == 1

    def test_rows_continue_after_failure(self, driver, collaborators):
        collaborators['store'].persist.side_effect = [PersistError('boom'), 'id-2']

        result = driver.process_rows([make_row(title='First'), make_row(title='Second')])

        assert result.failed_titles == ['First']
        assert result.persisted == 1
        assert collaborators['store'].persist.call_count == 2

    def test_report_success_notice(self, driver, caplog):
        result = driver.process_rows([make_row()])

        with caplog.at_level('INFO', logger='processor.models'):
            result.report()

        assert 'All events were uploaded successfully!' in caplog.text

    def test_report_lists_failed_titles(self, driver, caplog):
        result = driver.process_rows([make_row(title='Lost Event', location='')])

        with caplog.at_level('INFO', logger='processor.models'):
            result.report()

        assert 'The following events could not be uploaded' in caplog.text
        assert '- Lost Event' in caplog.text


@pytest.fixture
def live_services(monkeypatch):
    """S3 on moto, MongoDB on mongomock, browser and HTTP mocked."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')

    with mock_aws():
        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket=BUCKET)

        image_response = Mock(ok=True, status_code=200, content=b'jpeg-bytes')
        image_response.headers = {'Content-Type': 'image/jpeg'}
        http_session = Mock()
        http_session.get.return_value = image_response

        mongo_client = mongomock.MongoClient()
        geocoder = Mock()
        geocoder.resolve.return_value = Coordinates(latitude=40.7, longitude=-74.0)
        scraper = Mock()
        scraper.fetch_primary_image.return_value = SCRAPED_URL

        driver = BatchDriver(
            geocoder=geocoder,
            scraper=scraper,
            publisher=S3ImagePublisher(BUCKET, region='us-east-1', session=http_session),
            store=MongoEventStore(mongo_client, DB_NAME)
        )
        yield {
            'driver': driver,
            's3': s3,
            'db': mongo_client[DB_NAME],
            'geocoder': geocoder,
        }


class TestEndToEnd:
    """Full pipeline runs against mocked S3 and MongoDB."""

    def test_spooky_mixer_row(self, live_services):
        result = live_services['driver'].process_rows([SourceRow.from_cells(SPOOKY_CELLS)])

        assert result.failed_titles == []
        assert result.persisted == 1

        day_docs = list(live_services['db']['Event_2024_10_31'].find())
        themed_docs = list(live_services['db']['Halloween'].find())
        assert len(day_docs) == 1
        assert len(themed_docs) == 1
        for document in (day_docs[0], themed_docs[0]):
            assert document['event_title'] == 'Spooky Mixer'
            assert document['start_time'] == '19:00'
            assert document['end_time'] == '21:00'
            assert document['tags'] == ['halloween', 'social']
            assert document['image_url'] == (
                f"https://{BUCKET}.s3.us-east-1.amazonaws.com/Spooky_Mixer.jpg"
            )
            assert document['faculty'] == []
            assert document['degree_level'] == []

        stored = live_services['s3'].get_object(Bucket=BUCKET, Key='Spooky_Mixer.jpg')
        assert stored['Body'].read() == b'jpeg-bytes'

    def test_zero_geocoding_matches_still_persists(self, live_services):
        live_services['geocoder'].resolve.return_value = Coordinates()

        result = live_services['driver'].process_rows([SourceRow.from_cells(SPOOKY_CELLS)])

        assert result.persisted == 1
        document = live_services['db']['Event_2024_10_31'].find_one()
        assert document['latitude'] is None
        assert document['longitude'] is None

    @pytest.mark.parametrize('tags,themed', [
        ('Halloween', True),
        ('halloween', True),
        ('Halloweens', False),
    ])
    def test_themed_routing(self, live_services, tags, themed):
        cells = list(SPOOKY_CELLS)
        cells[9] = tags

        live_services['driver'].process_rows([SourceRow.from_cells(cells)])

        expected = 1 if themed else 0
        assert live_services['db']['Halloween'].count_documents({}) == expected

    def test_rerun_duplicates_records_and_overwrites_image(self, live_services):
        """Re-running the same sheet is not idempotent."""
        rows = [SourceRow.from_cells(SPOOKY_CELLS)]

        live_services['driver'].process_rows(rows)
        live_services['driver'].process_rows(rows)

        assert live_services['db']['Event_2024_10_31'].count_documents({}) == 2
        assert live_services['db']['Halloween'].count_documents({}) == 2
        listing = live_services['s3'].list_objects_v2(Bucket=BUCKET)
        assert [obj['Key'] for obj in listing['Contents']] == ['Spooky_Mixer.jpg']
