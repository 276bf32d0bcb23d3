"""
ThemeForge Kernel - Client Scripts

Fixed, theme-independent client scripts referenced by the footer partial.
Every packaged theme ships the same four files:

  assets/js/main.js      nav toggle, tabs, carousels, countdowns, animations
  assets/js/cart.js      add-to-cart, cart count, quantity / remove on the cart page
  assets/js/auth.js      login / register / logout forms
  assets/js/checkout.js  checkout form submission

The scripts talk to the storefront's REST endpoints (/api/cart, /api/auth,
/api/orders). Those endpoints are outside this package.
"""

from __future__ import annotations

MAIN_JS = """(function () {
  'use strict';

  function onReady(fn) {
    if (document.readyState !== 'loading') { fn(); } else { document.addEventListener('DOMContentLoaded', fn); }
  }

  function initNav() {
    var toggle = document.querySelector('[data-nav-toggle]');
    var nav = document.querySelector('[data-nav]');
    if (!toggle || !nav) return;
    toggle.addEventListener('click', function () { nav.classList.toggle('is-open'); });
  }

  function initTabs() {
    document.querySelectorAll('[data-tabs]').forEach(function (tabs) {
      var buttons = tabs.querySelectorAll('.tab-button');
      buttons.forEach(function (button) {
        button.addEventListener('click', function () {
          buttons.forEach(function (b) { b.classList.remove('active'); });
          tabs.querySelectorAll('.tab-panel').forEach(function (panel) { panel.hidden = true; });
          button.classList.add('active');
          var panel = document.getElementById(button.getAttribute('data-tab'));
          if (panel) panel.hidden = false;
        });
      });
    });
  }

  function initCarousels() {
    document.querySelectorAll('[data-carousel]').forEach(function (carousel) {
      var track = carousel.querySelector('.carousel-track');
      if (!track) return;
      var step = function () { return track.clientWidth * 0.8; };
      var prev = carousel.querySelector('.carousel-prev');
      var next = carousel.querySelector('.carousel-next');
      if (prev) prev.addEventListener('click', function () { track.scrollBy({ left: -step(), behavior: 'smooth' }); });
      if (next) next.addEventListener('click', function () { track.scrollBy({ left: step(), behavior: 'smooth' }); });
    });
  }

  function initCountdowns() {
    document.querySelectorAll('[data-countdown]').forEach(function (el) {
      var target = Date.parse(el.getAttribute('data-countdown'));
      if (isNaN(target)) return;
      var units = {
        days: el.querySelector('[data-unit="days"]'),
        hours: el.querySelector('[data-unit="hours"]'),
        minutes: el.querySelector('[data-unit="minutes"]'),
        seconds: el.querySelector('[data-unit="seconds"]')
      };
      function tick() {
        var remaining = Math.max(0, target - Date.now());
        if (remaining === 0) {
          var timer = el.querySelector('.countdown-timer');
          if (timer) timer.textContent = el.getAttribute('data-expired-text') || '';
          return;
        }
        var s = Math.floor(remaining / 1000);
        if (units.days) units.days.textContent = Math.floor(s / 86400);
        if (units.hours) units.hours.textContent = Math.floor((s % 86400) / 3600);
        if (units.minutes) units.minutes.textContent = Math.floor((s % 3600) / 60);
        if (units.seconds) units.seconds.textContent = s % 60;
        setTimeout(tick, 1000);
      }
      tick();
    });
  }

  function initAnimations() {
    var animated = document.querySelectorAll('[data-animation]');
    if (!('IntersectionObserver' in window)) {
      animated.forEach(function (el) { el.classList.add('is-visible'); });
      return;
    }
    var observer = new IntersectionObserver(function (entries) {
      entries.forEach(function (entry) {
        if (entry.isIntersecting) {
          entry.target.classList.add('is-visible');
          observer.unobserve(entry.target);
        }
      });
    }, { threshold: 0.1 });
    animated.forEach(function (el) { observer.observe(el); });
  }

  onReady(function () {
    initNav();
    initTabs();
    initCarousels();
    initCountdowns();
    initAnimations();
  });
})();
"""

CART_JS = """(function () {
  'use strict';

  function request(method, url, body) {
    return fetch(url, {
      method: method,
      credentials: 'same-origin',
      headers: { 'Content-Type': 'application/json' },
      body: body ? JSON.stringify(body) : undefined
    }).then(function (res) {
      if (!res.ok) throw new Error('Request failed: ' + res.status);
      return res.json();
    });
  }

  function updateCount(cart) {
    var count = (cart && cart.items || []).reduce(function (n, item) { return n + item.quantity; }, 0);
    document.querySelectorAll('[data-cart-count]').forEach(function (el) { el.textContent = count; });
  }

  function refresh() {
    return request('GET', '/api/cart').then(updateCount).catch(function () {});
  }

  document.addEventListener('click', function (event) {
    var add = event.target.closest('.add-to-cart');
    if (add) {
      event.preventDefault();
      add.disabled = true;
      request('POST', '/api/cart/items', { productId: add.getAttribute('data-product-id'), quantity: 1 })
        .then(updateCount)
        .finally(function () { add.disabled = false; });
      return;
    }
    var remove = event.target.closest('[data-remove-item]');
    if (remove) {
      event.preventDefault();
      request('DELETE', '/api/cart/items/' + remove.getAttribute('data-remove-item'))
        .then(function () { window.location.reload(); });
    }
  });

  document.addEventListener('change', function (event) {
    var input = event.target.closest('[data-quantity-for]');
    if (!input) return;
    var quantity = Math.max(1, parseInt(input.value, 10) || 1);
    request('PUT', '/api/cart/items/' + input.getAttribute('data-quantity-for'), { quantity: quantity })
      .then(function () { window.location.reload(); });
  });

  refresh();
  window.ThemeForgeCart = { refresh: refresh };
})();
"""

AUTH_JS = """(function () {
  'use strict';

  function showError(form, message) {
    var alert = form.querySelector('.alert-error');
    if (!alert) {
      alert = document.createElement('div');
      alert.className = 'alert alert-error';
      form.insertBefore(alert, form.firstChild);
    }
    alert.textContent = message;
  }

  document.querySelectorAll('form[data-auth]').forEach(function (form) {
    form.addEventListener('submit', function (event) {
      event.preventDefault();
      var mode = form.getAttribute('data-auth');
      var data = Object.fromEntries(new FormData(form).entries());
      fetch('/api/auth/' + mode, {
        method: 'POST',
        credentials: 'same-origin',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify(data)
      }).then(function (res) {
        return res.json().then(function (body) { return { ok: res.ok, body: body }; });
      }).then(function (result) {
        if (!result.ok) {
          showError(form, result.body.message || result.body.detail || 'Something went wrong');
          return;
        }
        var params = new URLSearchParams(window.location.search);
        window.location.href = params.get('redirect') || '/';
      }).catch(function () { showError(form, 'Network error, please try again'); });
    });
  });

  document.querySelectorAll('[data-logout]').forEach(function (link) {
    link.addEventListener('click', function (event) {
      event.preventDefault();
      fetch('/api/auth/logout', { method: 'POST', credentials: 'same-origin' })
        .finally(function () { window.location.href = '/'; });
    });
  });
})();
"""

CHECKOUT_JS = """(function () {
  'use strict';

  var form = document.querySelector('form[data-checkout]');
  if (!form) return;

  form.addEventListener('submit', function (event) {
    event.preventDefault();
    var button = form.querySelector('button[type="submit"]');
    if (button) button.disabled = true;
    var data = Object.fromEntries(new FormData(form).entries());
    fetch('/api/orders', {
      method: 'POST',
      credentials: 'same-origin',
      headers: { 'Content-Type': 'application/json' },
      body: JSON.stringify(data)
    }).then(function (res) {
      return res.json().then(function (body) { return { ok: res.ok, body: body }; });
    }).then(function (result) {
      if (!result.ok) throw new Error(result.body.message || result.body.detail || 'Checkout failed');
      window.location.href = '/orders/' + result.body.id + '?placed=1';
    }).catch(function (err) {
      var alert = form.querySelector('.alert-error') || document.createElement('div');
      alert.className = 'alert alert-error';
      alert.textContent = err.message;
      form.insertBefore(alert, form.firstChild);
      if (button) button.disabled = false;
    });
  });
})();
"""

SCRIPT_FILES: dict[str, str] = {
    "assets/js/main.js": MAIN_JS,
    "assets/js/cart.js": CART_JS,
    "assets/js/auth.js": AUTH_JS,
    "assets/js/checkout.js": CHECKOUT_JS,
}


def generate_scripts() -> dict[str, str]:
    """{relative path: source} for every bundled client script."""
    return dict(SCRIPT_FILES)
