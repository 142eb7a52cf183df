from booking.validation import DoubleBookingPrevention


def booking_data(**overrides):
    data = {'room_ids': ['R201'], 'start_date': '2030-06-03', 'end_date': '2030-06-05',
            'guest_count': 4, 'guest_name': 'Suzuki Scouts'}
    data.update(overrides)
    return data


class TestConflicts:
    def test_overlap_details(self, booked_db):
        conflicts = DoubleBookingPrevention.find_conflicts(['R101'], '2030-06-04', '2030-06-08')
        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.conflicting_booking_id == 'p1'
        assert conflict.conflicting_guest_name == 'Tanaka Club'
        assert (conflict.overlap_start, conflict.overlap_end) == ('2030-06-04', '2030-06-06')
        assert conflict.overlap_nights == 2

    def test_excluding_own_booking(self, booked_db):
        assert DoubleBookingPrevention.find_conflicts(
            ['R101'], '2030-06-04', '2030-06-08', exclude_booking_id='p1') == []

    def test_cancelled_booking_ignored(self, booked_db):
        assert DoubleBookingPrevention.find_conflicts(['R201'], '2030-06-03', '2030-06-06') == []

    def test_checkout_day_is_free(self, booked_db):
        assert DoubleBookingPrevention.find_conflicts(['R101'], '2030-06-06', '2030-06-07') == []

    def test_exclusive_validation(self, booked_db):
        validation = DoubleBookingPrevention.validate_booking_exclusively(
            ['R101', 'R202'], '2030-06-01', '2030-06-04')
        assert validation.is_valid is False
        assert validation.can_proceed is False
        assert 'Room R101 is held by Tanaka Club' in validation.warnings[0]

    def test_lookup_failure_reported(self, booked_db):
        booked_db.fail_on.add(('projects', 'select'))
        validation = DoubleBookingPrevention.validate_booking_exclusively(
            ['R101'], '2030-06-01', '2030-06-04')
        assert validation.is_valid is False
        assert validation.errors[0].startswith('Conflict check failed')

    def test_realtime_check(self, booked_db):
        result = DoubleBookingPrevention.perform_realtime_check(['R202'], '2030-06-01', '2030-06-04')
        assert result['success'] is True
        assert result['message'] == 'No conflicts, rooms can be booked'


class TestRules:
    def test_valid_request(self, fake_db):
        rules = DoubleBookingPrevention.validate_business_rules(booking_data())
        assert rules == {'errors': [], 'warnings': []}

    def test_past_dates(self, fake_db):
        rules = DoubleBookingPrevention.validate_business_rules(
            booking_data(start_date='2020-01-01', end_date='2020-01-03'))
        assert 'Cannot book dates in the past' in rules['errors']

    def test_long_stay_warning(self, fake_db):
        rules = DoubleBookingPrevention.validate_business_rules(booking_data(end_date='2030-07-10'))
        assert rules['errors'] == []
        assert rules['warnings'] == ['Stay exceeds 30 nights; confirm with the facility']

    def test_guest_count(self, fake_db):
        assert 'Guest count is required' in DoubleBookingPrevention.validate_business_rules(
            booking_data(guest_count=0))['errors']
        assert DoubleBookingPrevention.validate_business_rules(
            booking_data(guest_count=120))['warnings'] == ['Large group booking; confirm with the facility']

    def test_guest_name(self, fake_db):
        rules = DoubleBookingPrevention.validate_business_rules(booking_data(guest_name='  '))
        assert rules['errors'] == ['Guest name is required']

    def test_bad_dates(self, fake_db):
        rules = DoubleBookingPrevention.validate_business_rules(booking_data(end_date='2030-06-03'))
        assert rules['errors'] == ['End date must be after start date']

    def test_capacity(self, fake_db):
        short = DoubleBookingPrevention.validate_capacity(['R202'], 10)
        assert short['errors'] == ['Not enough capacity: 10 guests > 8 beds in selected rooms']
        tight = DoubleBookingPrevention.validate_capacity(['R202'], 7)
        assert tight['errors'] == []
        assert tight['warnings'] == ['Selected rooms are nearly full for this group size']

    def test_inactive_rooms_add_no_capacity(self, fake_db):
        result = DoubleBookingPrevention.validate_capacity(['R303'], 1)
        assert result['errors']


class TestFinalValidation:
    def test_passes(self, booked_db):
        validation = DoubleBookingPrevention.final_validation_before_commit(booking_data())
        assert validation.is_valid is True
        assert validation.warnings == []

    def test_business_errors_stop_before_lookup(self, booked_db):
        booked_db.fail_on.add(('projects', 'select'))
        validation = DoubleBookingPrevention.final_validation_before_commit(booking_data(guest_name=''))
        assert validation.errors == ['Guest name is required']

    def test_conflict(self, booked_db):
        validation = DoubleBookingPrevention.final_validation_before_commit(
            booking_data(room_ids=['R101']))
        assert validation.is_valid is False
        assert validation.conflicts[0].room_id == 'R101'

    def test_over_capacity(self, booked_db):
        validation = DoubleBookingPrevention.final_validation_before_commit(
            booking_data(room_ids=['R302'], guest_count=5))
        assert validation.is_valid is False
        assert validation.conflicts == []


class TestResolution:
    def test_options(self, booked_db):
        result = DoubleBookingPrevention.detect_and_resolve_conflicts(['R101'], '2030-06-04', '2030-06-08')
        assert result['has_conflicts'] is True
        options = {option['type']: option['data'] for option in result['resolution_options']}
        assert sorted(options['alternative_rooms']['room_ids']) == ['R201', 'R202', 'R301', 'R302']
        dates = options['alternative_dates']['dates']
        assert {'start_date': '2030-06-06', 'end_date': '2030-06-10', 'offset': 2} in dates
        assert all(d['offset'] not in (-1, 1) for d in dates)

    def test_no_conflict(self, booked_db):
        result = DoubleBookingPrevention.detect_and_resolve_conflicts(['R202'], '2030-06-04', '2030-06-08')
        assert result == {'has_conflicts': False, 'conflicts': [], 'errors': [], 'resolution_options': []}
