import pytest

from backoffice.models.domain import Domain
from backoffice.models.order import OrderItem
from backoffice.services import domains
from backoffice.services.errors import (
    ConflictingAssignment,
    DomainNotFound,
    InvalidDomain,
    InvalidInput,
    InvalidState,
    OrderItemNotFound,
    OrderNotPaid,
)
from backoffice.utils.enums import DomainStatus, OrderStatus


@pytest.fixture
def shop(factory):
    return factory.template(name="Shop", price="20000")


def test_available_domains_filters_by_template_and_status(db, factory, shop):
    other = factory.template(name="Blog")
    a = factory.domain(shop, "b-shop.com")
    b = factory.domain(shop, "a-shop.com")
    factory.domain(shop, "busy.com", status=DomainStatus.IN_USE.value)
    factory.domain(shop, "off.com", status=DomainStatus.SUSPENDED.value)
    factory.domain(other, "blog.com")

    names = [d.domain_name for d in domains.get_available_domains(db, shop.id)]
    assert names == [b.domain_name, a.domain_name]


def test_available_domains_include_current(db, factory, shop):
    busy = factory.domain(shop, "busy.com", status=DomainStatus.IN_USE.value)
    factory.domain(shop, "free.com")

    names = {d.domain_name for d in domains.get_available_domains(db, shop.id, current_domain_id=busy.id)}
    assert names == {"busy.com", "free.com"}


def test_assign_item_domain(db, factory, shop):
    order = factory.order()
    item = factory.item(order, shop)
    d = factory.domain(shop)

    result = domains.set_order_item_domain(db, item.id, d.id, order.id)
    assert result.success

    db.expire_all()
    d = db.get(Domain, d.id)
    assert d.status == DomainStatus.IN_USE.value
    assert d.assigned_order_id == order.id
    assert db.get(OrderItem, item.id).meta.domain_id == d.id


def test_assign_same_domain_again_is_noop(db, factory, shop):
    order = factory.order()
    item = factory.item(order, shop)
    d = factory.domain(shop)
    domains.set_order_item_domain(db, item.id, d.id, order.id)

    result = domains.set_order_item_domain(db, item.id, d.id, order.id)
    assert result.success
    assert "already assigned" in result.message


def test_assign_rejects_unavailable_domain(db, factory, shop):
    other_order = factory.order()
    order = factory.order()
    item = factory.item(order, shop)
    busy = factory.domain(shop, status=DomainStatus.IN_USE.value, assigned_order_id=other_order.id)
    suspended = factory.domain(shop, status=DomainStatus.SUSPENDED.value)

    with pytest.raises(InvalidDomain):
        domains.set_order_item_domain(db, item.id, busy.id, order.id)
    with pytest.raises(InvalidDomain):
        domains.set_order_item_domain(db, item.id, suspended.id, order.id)
    with pytest.raises(InvalidDomain):
        domains.set_order_item_domain(db, item.id, 9999, order.id)

    db.expire_all()
    assert db.get(Domain, busy.id).assigned_order_id == other_order.id


def test_assign_rejects_other_template_and_tool_items(db, factory, shop):
    order = factory.order()
    item = factory.item(order, shop)
    tool_item = factory.item(order, factory.tool())
    foreign = factory.domain(factory.template(name="Blog"))
    d = factory.domain(shop)

    with pytest.raises(InvalidDomain):
        domains.set_order_item_domain(db, item.id, foreign.id, order.id)
    with pytest.raises(InvalidInput):
        domains.set_order_item_domain(db, tool_item.id, d.id, order.id)
    with pytest.raises(OrderItemNotFound):
        domains.set_order_item_domain(db, item.id, d.id, order.id + 100)


def test_concurrent_assignment_one_wins(session_factory, factory, shop):
    order_a = factory.order()
    order_b = factory.order()
    item_a = factory.item(order_a, shop)
    item_b = factory.item(order_b, shop)
    d = factory.domain(shop, "contested.com")

    sa = session_factory()
    sb = session_factory()
    try:
        # второй админ открыл форму раньше: держим ссылку, иначе identity map её отпустит
        seen = sb.get(Domain, d.id)
        assert seen.status == DomainStatus.AVAILABLE.value

        assert domains.set_order_item_domain(sa, item_a.id, d.id, order_a.id).success

        with pytest.raises(ConflictingAssignment):
            domains.set_order_item_domain(sb, item_b.id, d.id, order_b.id)

        sb.expire_all()
        stored = sb.get(Domain, d.id)
        assert stored.status == DomainStatus.IN_USE.value
        assert stored.assigned_order_id == order_a.id
        assert sb.get(OrderItem, item_b.id).meta.domain_id is None
    finally:
        sa.close()
        sb.close()


def test_second_assignment_after_first_is_rejected(db, factory, shop):
    order_a = factory.order()
    order_b = factory.order()
    item_a = factory.item(order_a, shop)
    item_b = factory.item(order_b, shop)
    d = factory.domain(shop, "taken-later.com")

    domains.set_order_item_domain(db, item_a.id, d.id, order_a.id)
    with pytest.raises(InvalidDomain):
        domains.set_order_item_domain(db, item_b.id, d.id, order_b.id)

    db.expire_all()
    assert db.get(Domain, d.id).assigned_order_id == order_a.id
    assert db.get(OrderItem, item_b.id).meta.domain_id is None


def test_round_trip_current_assignment_visible_only_to_owner(db, factory, shop):
    order = factory.order()
    item = factory.item(order, shop)
    d = factory.domain(shop, "mine.com")
    factory.domain(shop, "spare.com")
    domains.set_order_item_domain(db, item.id, d.id, order.id)

    other_order = factory.order()
    other_item = factory.item(other_order, shop)

    db.expire_all()
    mine = {x.domain_name for x in domains.available_domains_for_item(db, db.get(OrderItem, item.id))}
    theirs = {x.domain_name for x in domains.available_domains_for_item(db, other_item)}
    assert mine == {"mine.com", "spare.com"}
    assert theirs == {"spare.com"}


def test_reassign_releases_previous_domain(db, factory, shop):
    order = factory.order(status=OrderStatus.PAID.value)
    item = factory.item(order, shop)
    first = factory.domain(shop, "first.com")
    second = factory.domain(shop, "second.com")
    domains.set_order_item_domain(db, item.id, first.id, order.id)

    result = domains.update_order_domains(db, order.id, [(item.id, second.id)])
    assert result.success

    db.expire_all()
    assert db.get(Domain, first.id).status == DomainStatus.AVAILABLE.value
    assert db.get(Domain, first.id).assigned_order_id is None
    assert db.get(Domain, second.id).assigned_order_id == order.id
    assert db.get(OrderItem, item.id).meta.domain_id == second.id


def test_update_order_domains_all_or_nothing(db, factory, shop):
    order = factory.order(status=OrderStatus.PAID.value)
    item1 = factory.item(order, shop)
    item2 = factory.item(order, shop)
    free = factory.domain(shop, "free.com")
    taken = factory.domain(shop, "taken.com", status=DomainStatus.IN_USE.value)

    with pytest.raises(InvalidDomain):
        domains.update_order_domains(db, order.id, [(item1.id, free.id), (item2.id, taken.id)], notes="x")

    db.expire_all()
    assert db.get(Domain, free.id).status == DomainStatus.AVAILABLE.value
    assert db.get(OrderItem, item1.id).meta.domain_id is None


def test_update_order_domains_requires_paid_order(db, factory, shop):
    order = factory.order()
    item = factory.item(order, shop)
    d = factory.domain(shop)
    with pytest.raises(OrderNotPaid):
        domains.update_order_domains(db, order.id, [(item.id, d.id)])


def test_update_order_domains_without_changes(db, factory):
    order = factory.order(status=OrderStatus.PAID.value)
    with pytest.raises(InvalidInput):
        domains.update_order_domains(db, order.id, [], notes="")


def test_assign_order_domain_legacy_path(db, factory, shop):
    order = factory.order(status=OrderStatus.PAID.value, template_id=shop.id)
    d = factory.domain(shop)

    result = domains.assign_order_domain(db, d.id, order.id)
    assert result.success

    db.expire_all()
    assert db.get(Domain, d.id).assigned_order_id == order.id
    assert order.chosen_domain_id == d.id


def test_legacy_path_requires_order_template(db, factory, shop):
    order = factory.order(status=OrderStatus.PAID.value)
    factory.item(order, shop)
    d = factory.domain(factory.template(name="Blog"))

    with pytest.raises(InvalidInput):
        domains.assign_order_domain(db, d.id, order.id)

    db.expire_all()
    assert db.get(Domain, d.id).status == DomainStatus.AVAILABLE.value


def test_assign_order_domain_rejects_pending(db, factory, shop):
    order = factory.order(template_id=shop.id)
    d = factory.domain(shop)
    with pytest.raises(OrderNotPaid):
        domains.assign_order_domain(db, d.id, order.id)


def test_add_domain_normalizes_and_rejects_duplicates(db, factory, shop):
    d = domains.add_domain(db, shop.id, "  MyShop.COM ")
    assert d.domain_name == "myshop.com"
    assert d.status == DomainStatus.AVAILABLE.value

    with pytest.raises(InvalidInput):
        domains.add_domain(db, shop.id, "myshop.com")
    with pytest.raises(InvalidInput):
        domains.add_domain(db, 9999, "other.com")


def test_bulk_add_domains(db, factory, shop):
    factory.domain(shop, "c.com")
    added, errors = domains.bulk_add_domains(db, shop.id, "a.com\nA.com\n\nb.com\nc.com\n")
    assert added == 2
    assert len(errors) == 2
    assert {d.domain_name for d in domains.get_available_domains(db, shop.id)} == {"a.com", "b.com", "c.com"}


def test_update_domain(db, factory, shop):
    blog = factory.template(name="Blog")
    d = factory.domain(shop, "old.com")
    updated = domains.update_domain(db, d.id, blog.id, "New.com", DomainStatus.SUSPENDED.value, "moved")
    assert (updated.domain_name, updated.template_id, updated.status) == ("new.com", blog.id, "suspended")

    busy = factory.domain(shop, "busy.com", status=DomainStatus.IN_USE.value)
    with pytest.raises(InvalidState):
        domains.update_domain(db, busy.id, blog.id, "busy.com")
    renamed = domains.update_domain(db, busy.id, shop.id, "busy2.com", notes="renamed")
    assert renamed.domain_name == "busy2.com"
    assert renamed.status == DomainStatus.IN_USE.value


def test_delete_domain(db, factory, shop):
    free = factory.domain(shop, "free.com")
    busy = factory.domain(shop, "busy.com", status=DomainStatus.IN_USE.value)

    assert domains.delete_domain(db, free.id) == "free.com"
    assert db.get(Domain, free.id) is None

    with pytest.raises(InvalidState):
        domains.delete_domain(db, busy.id)
    with pytest.raises(DomainNotFound):
        domains.delete_domain(db, 9999)
