"""Tests for app.pipeline.grouping — one organization lookup per domain."""
from types import SimpleNamespace

from app.pipeline.grouping import group_by_domain


def _contact(email, domain=None):
    company = SimpleNamespace(domain=domain) if domain is not None else None
    return SimpleNamespace(email=email, company=company)


class TestGroupByDomain:

    def test_groups_by_domain_in_first_seen_order(self):
        a = _contact('a@x.com', 'x.com')
        b = _contact('b@y.com', 'y.com')
        c = _contact('c@x.com', 'x.com')
        groups = group_by_domain([a, b, c])
        assert [g.domain for g in groups] == ['x.com', 'y.com']
        assert groups[0].contacts == [a, c]
        assert groups[1].contacts == [b]

    def test_domain_is_normalized(self):
        a = _contact('a@x.com', 'X.com')
        b = _contact('b@x.com', ' x.com ')
        groups = group_by_domain([a, b])
        assert len(groups) == 1
        assert groups[0].domain == 'x.com'

    def test_no_company_goes_last(self):
        lone = _contact('lone@gmail.com')
        a = _contact('a@x.com', 'x.com')
        groups = group_by_domain([lone, a])
        assert [g.domain for g in groups] == ['x.com', None]
        assert groups[-1].contacts == [lone]
        assert not groups[-1].has_domain

    def test_blank_domain_treated_as_no_domain(self):
        c = _contact('c@x.com', '')
        groups = group_by_domain([c])
        assert len(groups) == 1
        assert groups[0].domain is None

    def test_group_keeps_company_record(self):
        a = _contact('a@x.com', 'x.com')
        groups = group_by_domain([a])
        assert groups[0].company is a.company
        assert groups[0].has_domain

    def test_empty_input(self):
        assert group_by_domain([]) == []

    def test_every_contact_in_exactly_one_group(self):
        contacts = [_contact(f'{i}@d{i % 3}.com', f'd{i % 3}.com') for i in range(7)]
        contacts.append(_contact('x@gmail.com'))
        groups = group_by_domain(contacts)
        flattened = [c for g in groups for c in g.contacts]
        assert sorted(map(id, flattened)) == sorted(map(id, contacts))
